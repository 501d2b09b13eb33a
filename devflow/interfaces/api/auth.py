"""Auth API routes: login, logout, session."""

from fastapi import APIRouter, Depends

from devflow.application.services.navigation import HOME_PATH
from devflow.application.services.session_store import SessionStore
from devflow.application.services.view_registry import ViewRegistry
from devflow.core.exceptions import InvalidCredentials
from devflow.domain.schemas.auth import LoginRequest, SessionState
from devflow.interfaces.deps import get_registry, get_session_store

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login")
def login(body: LoginRequest, store: SessionStore = Depends(get_session_store)):
    result = store.login(body.username, body.pin)
    if not result.success:
        raise store.last_error or InvalidCredentials()
    return {
        "success": True,
        "user": store.session.user,
        "redirect_to": HOME_PATH,
    }


@router.post("/logout")
def logout(
    store: SessionStore = Depends(get_session_store),
    registry: ViewRegistry = Depends(get_registry),
):
    if store.session.user:
        registry.unmount_user(store.session.user.id)
    store.logout()
    return {"success": True, "redirect_to": store.navigator.location}


@router.get("/session", response_model=SessionState)
def get_session(store: SessionStore = Depends(get_session_store)):
    return store.state
