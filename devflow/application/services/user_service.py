"""Employee management for admins: list, add and delete sales and engineer users."""

from typing import List, Optional

import structlog

from devflow.application.services.navigation import ADMIN_ONLY_NOTICE, HOME_PATH
from devflow.application.services.view_registry import BaseView
from devflow.core.exceptions import PermissionDenied, RemoteOperationFailed, ValidationFailed
from devflow.core.notices import Outcome
from devflow.domain.repositories.gateway import UNIQUE_VIOLATION, Collection, DataGateway, Query
from devflow.domain.roles import Action, Permissions, Role
from devflow.domain.schemas.auth import AuthSession, EmployeeCreate, UserRead

logger = structlog.get_logger(__name__)

MIN_PIN_LENGTH = 4


def derive_username(first_name: str, last_name: str) -> str:
    """First initial plus last name, lowercase."""
    return (first_name[:1] + last_name).lower()


class UsersView(BaseView):
    def __init__(self, gateway: DataGateway, session: AuthSession):
        super().__init__()
        self.gateway = gateway
        self.session = session
        self.permissions = Permissions(session.role)
        self.users: List[UserRead] = []
        self.loading = True
        self.pending_delete_id: Optional[int] = None

    def _allowed(self) -> bool:
        return self.permissions.can(Action.MANAGE_USERS)

    def _denied(self) -> Outcome:
        return Outcome.failure(PermissionDenied(ADMIN_ONLY_NOTICE), redirect_to=HOME_PATH)

    def load(self) -> Outcome[List[UserRead]]:
        if not self._allowed():
            return self._denied()
        try:
            result = self.gateway.select(
                Collection.USERS, Query().neq("role", Role.ADMIN.value).order("name")
            ).raise_for_error()
        except RemoteOperationFailed as e:
            logger.error("Error fetching users", error=e.message)
            self.loading = False
            return Outcome.failure(e, "Failed to load users")

        if self._discard_late("load"):
            return Outcome.success()
        self.users = [UserRead.model_validate(row) for row in result.data]
        self.loading = False
        return Outcome.success(self.users)

    def add_employee(self, form: EmployeeCreate) -> Outcome[UserRead]:
        if not self._allowed():
            return self._denied()
        if not form.first_name or not form.last_name or not form.pin:
            return Outcome.failure(ValidationFailed("Please fill in all required fields"))
        if len(form.pin) < MIN_PIN_LENGTH:
            return Outcome.failure(ValidationFailed("PIN must be at least 4 digits"))

        values = {
            "username": derive_username(form.first_name, form.last_name),
            "name": f"{form.first_name} {form.last_name}",
            "pin": form.pin,
            "role": form.role,
        }
        result = self.gateway.insert(Collection.USERS, [values])
        if result.error is not None:
            logger.error("Error adding employee", username=values["username"], error=result.error.message)
            if result.error.code == UNIQUE_VIOLATION:
                return Outcome.failure(
                    ValidationFailed("Username already exists. Try a different name.", {"code": UNIQUE_VIOLATION})
                )
            return Outcome.failure(RemoteOperationFailed(result.error.message), "Failed to add employee")

        user = UserRead.model_validate(result.first) if result.first else None
        if user is not None and not self._discard_late("add"):
            self.users.append(user)
        logger.info("Employee added", username=values["username"], role=form.role)
        return Outcome.success(user, "Employee added successfully")

    def request_delete(self, user_id: int) -> None:
        self.pending_delete_id = user_id

    def cancel_delete(self) -> None:
        self.pending_delete_id = None

    def confirm_delete(self) -> Outcome[int]:
        user_id = self.pending_delete_id
        if user_id is None:
            return Outcome.success()

        if not self._allowed():
            self.pending_delete_id = None
            return Outcome.failure(PermissionDenied("You do not have permission to delete users"))

        try:
            self.gateway.delete(Collection.USERS, Query().eq("id", user_id)).raise_for_error()
        except RemoteOperationFailed as e:
            logger.error("Error deleting user", user_id=user_id, error=e.message)
            return Outcome.failure(e, "Failed to delete user")
        finally:
            self.pending_delete_id = None

        if not self._discard_late("delete"):
            self.users = [u for u in self.users if u.id != user_id]
        logger.info("User deleted", user_id=user_id)
        return Outcome.success(user_id, "User deleted successfully")
