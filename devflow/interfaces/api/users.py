"""Users API: employee list, add employee and the delete flow. Admin only."""

from fastapi import APIRouter, Depends, status

from devflow.application.services.user_service import UsersView
from devflow.application.services.view_registry import ViewRegistry
from devflow.core.notices import Outcome, respond
from devflow.domain.repositories.gateway import DataGateway
from devflow.domain.schemas.auth import AuthSession, EmployeeCreate
from devflow.interfaces.api.deps import get_current_session
from devflow.interfaces.deps import get_gateway, get_registry

router = APIRouter(prefix="/api/users", tags=["Users"])


def get_users_view(
    session: AuthSession = Depends(get_current_session),
    gateway: DataGateway = Depends(get_gateway),
    registry: ViewRegistry = Depends(get_registry),
) -> UsersView:
    return registry.get_or_create(session.user.id, "users", lambda: UsersView(gateway, session))


@router.get("")
def list_users(view: UsersView = Depends(get_users_view)):
    return respond(view.load())


@router.post("", status_code=status.HTTP_201_CREATED)
def add_employee(body: EmployeeCreate, view: UsersView = Depends(get_users_view)):
    return respond(view.add_employee(body))


@router.post("/{user_id}/delete-request")
def request_delete(user_id: int, view: UsersView = Depends(get_users_view)):
    view.request_delete(user_id)
    return respond(Outcome.success({"pending_delete_id": view.pending_delete_id}))


@router.post("/delete/confirm")
def confirm_delete(view: UsersView = Depends(get_users_view)):
    return respond(view.confirm_delete())


@router.post("/delete/cancel")
def cancel_delete(view: UsersView = Depends(get_users_view)):
    view.cancel_delete()
    return respond(Outcome.success({"pending_delete_id": None}))
