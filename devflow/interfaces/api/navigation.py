"""Navigation API: the role-specific sidebar."""

from fastapi import APIRouter, Depends

from devflow.application.services.navigation import Sidebar, sidebar_for
from devflow.domain.schemas.auth import AuthSession
from devflow.interfaces.api.deps import get_current_session

router = APIRouter(prefix="/api/navigation", tags=["Navigation"])


@router.get("/sidebar", response_model=Sidebar)
def get_sidebar(session: AuthSession = Depends(get_current_session)):
    return sidebar_for(session.role)
