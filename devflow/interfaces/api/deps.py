"""FastAPI dependency: session from the client cookies."""

from fastapi import Depends

from devflow.application.services.session_store import SessionStore
from devflow.core.exceptions import UnauthorizedException
from devflow.domain.schemas.auth import AuthSession
from devflow.interfaces.deps import get_session_store


def get_current_session(store: SessionStore = Depends(get_session_store)) -> AuthSession:
    """Require a restored session with a stored user."""
    if not store.session.is_authenticated or store.session.user is None:
        raise UnauthorizedException("You need to be logged in")
    return store.session

