"""
Project detail panel.

Opens with a snapshot of the row's editable fields. Only admins may change
them; Save is offered when the fields differ from the snapshot. Closing
without saving restores the snapshot.
"""

from typing import Any, List

import structlog

from devflow.core.exceptions import AppError, PermissionDenied, RemoteOperationFailed, ValidationFailed
from devflow.core.notices import Outcome
from devflow.domain.repositories.gateway import Collection, DataGateway, Query
from devflow.domain.roles import Action, Permissions
from devflow.domain.schemas.project import PanelEdit, PanelFields, PanelState, PipelineRow, UserOption

logger = structlog.get_logger(__name__)

ADMIN_HINT = (
    "As an admin, you can edit all project details including client representatives and engineers."
)
READ_ONLY_HINT = "Viewing project details. Only admins can edit this information after creation."


def fields_of(row: PipelineRow) -> PanelFields:
    return PanelFields(
        name=row.header,
        status=row.status,
        sale_id=row.sale_id,
        engineer_id=row.engineer_id,
    )


class DetailPanel:
    def __init__(self, gateway: DataGateway, permissions: Permissions, row: PipelineRow):
        self.gateway = gateway
        self.permissions = permissions
        self.project_id = row.id
        self.title = row.header
        self.snapshot = fields_of(row)
        self.fields = self.snapshot.model_copy()
        self.sales_options: List[UserOption] = []
        self.engineer_options: List[UserOption] = []

    @property
    def editable(self) -> bool:
        return self.permissions.can(Action.EDIT_PROJECT)

    @property
    def dirty(self) -> bool:
        return self.fields != self.snapshot

    @property
    def can_save(self) -> bool:
        return self.dirty and self.editable

    def load_options(self) -> Outcome[PanelState]:
        """Fetch the sales rep and engineer choices."""
        try:
            options = {}
            for role in ("sales", "engineer"):
                result = self.gateway.select(
                    Collection.USERS, Query().eq("role", role), columns=["id", "name"]
                ).raise_for_error()
                options[role] = [UserOption(id=r["id"], name=r["name"]) for r in result.data]
        except RemoteOperationFailed as e:
            logger.error("Error fetching users", error=e.message)
            return Outcome.failure(e, "Failed to load users")
        self.sales_options = options["sales"]
        self.engineer_options = options["engineer"]
        return Outcome.success(self.state())

    def set_field(self, name: str, value: Any) -> None:
        if not self.editable:
            raise PermissionDenied("Only admins can edit project details")
        if name not in PanelFields.model_fields:
            raise ValidationFailed(f"Unknown field: {name}")
        self.fields = self.fields.model_copy(update={name: value})

    def edit(self, change: PanelEdit) -> Outcome[PanelState]:
        try:
            for name, value in change.model_dump(exclude_unset=True).items():
                self.set_field(name, value)
        except AppError as e:
            return Outcome.failure(e)
        return Outcome.success(self.state())

    def save(self) -> Outcome[PanelFields]:
        if not self.editable:
            return Outcome.failure(PermissionDenied("Only admins can edit project details"))
        if not self.dirty:
            return Outcome.success(self.snapshot)

        values = self.fields.model_dump()
        try:
            self.gateway.update(
                Collection.PROJECTS, values, Query().eq("id", self.project_id)
            ).raise_for_error()
        except RemoteOperationFailed as e:
            logger.error("Error updating project", project_id=self.project_id, error=e.message)
            return Outcome.failure(e, "Failed to update project")

        self.snapshot = self.fields.model_copy()
        self.title = self.snapshot.name
        logger.info("Project updated", project_id=self.project_id)
        return Outcome.success(self.snapshot, "Project updated successfully")

    def close(self) -> None:
        self.fields = self.snapshot.model_copy()

    def state(self) -> PanelState:
        return PanelState(
            project_id=self.project_id,
            title=self.title,
            fields=self.fields,
            snapshot=self.snapshot,
            editable=self.editable,
            dirty=self.dirty,
            can_save=self.can_save,
            sales_options=self.sales_options,
            engineer_options=self.engineer_options,
            hint=ADMIN_HINT if self.editable else READ_ONLY_HINT,
        )
