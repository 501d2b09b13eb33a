"""
Pipeline table view.

Loads projects once and keeps everything else client-side: sorting,
filtering, status tabs, selection, pagination and drag reorder all act on
the in-memory rows. Create and delete call the gateway and then apply the
change locally without re-fetching.
"""

import math
from typing import Dict, List, Optional, Set

import structlog

from devflow.application.services.detail_panel import DetailPanel
from devflow.application.services.view_registry import BaseView
from devflow.core.exceptions import (
    EntityNotFoundException,
    PermissionDenied,
    RemoteOperationFailed,
    ValidationFailed,
)
from devflow.core.notices import Outcome
from devflow.domain.repositories.gateway import Collection, DataGateway, Query
from devflow.domain.roles import Action, Permissions, Role
from devflow.domain.schemas.auth import AuthSession
from devflow.domain.schemas.project import (
    STATUS_ORDER,
    PanelEdit,
    PanelState,
    PipelineRow,
    ProjectCreate,
    ProjectRecord,
    SortSpec,
    TablePage,
    TableStateUpdate,
)

logger = structlog.get_logger(__name__)

PAGE_SIZES = (10, 20, 30, 40, 50)
DEFAULT_PAGE_SIZE = 10
TABS = ["all"] + STATUS_ORDER
HIDEABLE_COLUMNS = ("status", "sale", "engineer")
SORTABLE_COLUMNS = ("header", "status", "sale", "engineer")
SEARCHABLE_COLUMNS = ("header", "status", "sale", "engineer")


class PipelineView(BaseView):
    def __init__(self, gateway: DataGateway, session: AuthSession):
        super().__init__()
        self.gateway = gateway
        self.session = session
        self.permissions = Permissions(session.role)

        self.rows: List[PipelineRow] = []
        self.users: Dict[int, str] = {}
        self.loading = False
        self.loaded = False

        self.sorting: List[SortSpec] = []
        self.column_filters: Dict[str, str] = {}
        self.global_filter = ""
        self.column_visibility: Dict[str, bool] = {c: True for c in HIDEABLE_COLUMNS}
        self.selection: Set[int] = set()
        self.page_index = 0
        self.page_size = DEFAULT_PAGE_SIZE

        self.pending_delete_id: Optional[int] = None
        self.panel: Optional[DetailPanel] = None

    @property
    def user_id(self) -> Optional[int]:
        return self.session.user.id if self.session.user else None

    def _to_row(self, record: ProjectRecord) -> PipelineRow:
        return PipelineRow(
            id=record.id,
            header=record.name,
            status=record.status,
            sale=self.users.get(record.sale_id) if record.sale_id is not None else None,
            engineer=self.users.get(record.engineer_id) if record.engineer_id is not None else None,
            sale_id=record.sale_id,
            engineer_id=record.engineer_id,
            email=record.email,
            created_at=record.created_at,
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> Outcome[TablePage]:
        """Fetch the user lookup, then the caller's projects, newest first."""
        self.loading = True
        try:
            users = self.gateway.select(
                Collection.USERS, Query().in_("role", [Role.SALES.value, Role.ENGINEER.value])
            ).raise_for_error()
            lookup = {u["id"]: u["name"] for u in users.data}

            query = Query().order("created_at", desc=True)
            if self.permissions.is_sales:
                query.eq("sale_id", self.user_id)
            projects = self.gateway.select(Collection.PROJECTS, query).raise_for_error()
        except RemoteOperationFailed as e:
            logger.error("Error fetching projects", error=e.message)
            self.loading = False
            return Outcome.failure(e, "Failed to load projects")

        if self._discard_late("load"):
            return Outcome.success()

        self.users = lookup
        self.rows = [self._to_row(ProjectRecord.model_validate(p)) for p in projects.data]
        self.selection &= {r.id for r in self.rows}
        self.loading = False
        self.loaded = True
        logger.info("Pipeline loaded", rows=len(self.rows), role=self.session.role)
        return Outcome.success(self.page())

    # ------------------------------------------------------------------
    # Client-side table state
    # ------------------------------------------------------------------

    def _matches(self, row: PipelineRow) -> bool:
        for column, value in self.column_filters.items():
            cell = getattr(row, column, None)
            if column == "status":
                if cell != value:
                    return False
            elif value.lower() not in (cell or "").lower():
                return False

        needle = self.global_filter.strip().lower()
        if needle:
            return any(needle in (getattr(row, c) or "").lower() for c in SEARCHABLE_COLUMNS)
        return True

    def filtered_rows(self) -> List[PipelineRow]:
        rows = [r for r in self.rows if self._matches(r)]
        for spec in reversed(self.sorting):
            rows.sort(key=lambda r: (getattr(r, spec.id) or "").lower(), reverse=spec.desc)
        return rows

    @property
    def page_count(self) -> int:
        return math.ceil(len(self.filtered_rows()) / self.page_size)

    def _reset_page(self):
        self.page_index = 0

    def set_global_filter(self, value: str) -> None:
        self.global_filter = value or ""
        self._reset_page()

    def set_column_filter(self, column: str, value: Optional[str]) -> None:
        if value is None or value == "":
            self.column_filters.pop(column, None)
        else:
            self.column_filters[column] = value
        self._reset_page()

    def select_tab(self, tab: str) -> None:
        """Switch the status facet. Sets the status filter, never re-queries."""
        if tab not in TABS:
            raise ValidationFailed(f"Unknown tab: {tab}", {"tabs": TABS})
        self.set_column_filter("status", None if tab == "all" else tab)

    @property
    def tab(self) -> str:
        return self.column_filters.get("status", "all")

    def toggle_sort(self, column: str) -> None:
        if column not in SORTABLE_COLUMNS:
            raise ValidationFailed(f"Column cannot be sorted: {column}")
        current = self.sorting[0] if self.sorting and self.sorting[0].id == column else None
        desc = current is not None and not current.desc
        self.sorting = [SortSpec(id=column, desc=desc)]

    def set_visibility(self, column: str, visible: bool) -> None:
        if column not in HIDEABLE_COLUMNS:
            raise ValidationFailed(f"Column cannot be hidden: {column}")
        self.column_visibility[column] = visible

    def set_page_index(self, index: int) -> None:
        last = max(self.page_count - 1, 0)
        self.page_index = min(max(index, 0), last)

    def set_page_size(self, size: int) -> None:
        """Change the page size, keeping the current top row on screen."""
        if size not in PAGE_SIZES:
            raise ValidationFailed(f"Page size must be one of {list(PAGE_SIZES)}")
        top_row = self.page_index * self.page_size
        self.page_size = size
        self.page_index = top_row // size

    def apply(self, update: TableStateUpdate) -> None:
        if update.global_filter is not None:
            self.set_global_filter(update.global_filter)
        if update.tab is not None:
            self.select_tab(update.tab)
        if update.page_size is not None:
            self.set_page_size(update.page_size)
        if update.page_index is not None:
            self.set_page_index(update.page_index)

    def _page_rows(self, rows: List[PipelineRow]) -> List[PipelineRow]:
        start = self.page_index * self.page_size
        return rows[start:start + self.page_size]

    def select_row(self, row_id: int, selected: bool = True) -> None:
        if not any(r.id == row_id for r in self.rows):
            raise EntityNotFoundException(f"Project {row_id} not found")
        if selected:
            self.selection.add(row_id)
        else:
            self.selection.discard(row_id)

    def select_page(self, selected: bool = True) -> None:
        ids = {r.id for r in self._page_rows(self.filtered_rows())}
        if selected:
            self.selection |= ids
        else:
            self.selection -= ids

    def reorder(self, active_id: int, over_id: int) -> None:
        """Move one row to another row's position. In memory only."""
        if active_id == over_id:
            return
        ids = [r.id for r in self.rows]
        if active_id not in ids or over_id not in ids:
            raise EntityNotFoundException("Row to reorder not found")
        old_index, new_index = ids.index(active_id), ids.index(over_id)
        row = self.rows.pop(old_index)
        self.rows.insert(new_index, row)

    def page(self) -> TablePage:
        rows = self.filtered_rows()
        page_count = math.ceil(len(rows) / self.page_size)
        filtered_ids = {r.id for r in rows}
        selected = len(self.selection & filtered_ids)
        return TablePage(
            rows=self._page_rows(rows),
            page_index=self.page_index,
            page_size=self.page_size,
            page_count=page_count,
            can_previous=self.page_index > 0,
            can_next=self.page_index < page_count - 1,
            filtered_count=len(rows),
            total_count=len(self.rows),
            selected_count=selected,
            selection_label=f"{selected} of {len(rows)} row(s) selected.",
            sorting=self.sorting,
            column_filters=self.column_filters,
            global_filter=self.global_filter,
            column_visibility=self.column_visibility,
            tab=self.tab,
            loading=self.loading,
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, form: ProjectCreate) -> Outcome[PipelineRow]:
        if not form.name.strip():
            return Outcome.failure(ValidationFailed("Please enter a project name"))
        if not form.status:
            return Outcome.failure(ValidationFailed("Please select a status"))

        sale_id = form.sale_id if self.permissions.can(Action.ASSIGN_SALES_REP) else None
        if self.permissions.is_sales:
            sale_id = self.user_id

        values = {
            "name": form.name,
            "status": form.status,
            "sale_id": sale_id,
            "engineer_id": form.engineer_id,
        }
        try:
            result = self.gateway.insert(Collection.PROJECTS, [values]).raise_for_error()
        except RemoteOperationFailed as e:
            logger.error("Error adding client", error=e.message)
            return Outcome.failure(e, "Failed to add client")

        names = self._resolve_names(sale_id, form.engineer_id)
        stored = result.first or {}
        row = PipelineRow(
            id=stored.get("id"),
            header=form.name,
            status=form.status,
            sale=names.get(sale_id),
            engineer=names.get(form.engineer_id),
            sale_id=sale_id,
            engineer_id=form.engineer_id,
            email=stored.get("email"),
            created_at=stored.get("created_at"),
        )
        if self._discard_late("create"):
            return Outcome.success(row, "Client added successfully")
        self.rows.append(row)
        logger.info("Client added", project_id=row.id, sale_id=sale_id)
        return Outcome.success(row, "Client added successfully")

    def _resolve_names(self, *user_ids: Optional[int]) -> Dict[int, str]:
        ids = [i for i in user_ids if i is not None]
        if not ids:
            return {}
        result = self.gateway.select(Collection.USERS, Query().in_("id", ids), columns=["id", "name"])
        if not result.ok:
            logger.warning("Could not resolve user names", user_ids=ids, error=result.error.message)
            return {}
        return {u["id"]: u["name"] for u in result.data}

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def request_delete(self, project_id: int) -> None:
        self.pending_delete_id = project_id

    def cancel_delete(self) -> None:
        self.pending_delete_id = None

    def confirm_delete(self) -> Outcome[int]:
        project_id = self.pending_delete_id
        if project_id is None:
            return Outcome.success()

        if not self.permissions.can(Action.DELETE_PROJECT):
            self.pending_delete_id = None
            return Outcome.failure(PermissionDenied("You do not have permission to delete clients"))

        try:
            self.gateway.delete(Collection.PROJECTS, Query().eq("id", project_id)).raise_for_error()
        except RemoteOperationFailed as e:
            logger.error("Error deleting client", project_id=project_id, error=e.message)
            return Outcome.failure(e, "Failed to delete client")
        finally:
            self.pending_delete_id = None

        if not self._discard_late("delete"):
            self.rows = [r for r in self.rows if r.id != project_id]
            self.selection.discard(project_id)
            if self.panel and self.panel.project_id == project_id:
                self.panel = None
        logger.info("Client deleted", project_id=project_id)
        return Outcome.success(project_id, "Client deleted successfully")

    # ------------------------------------------------------------------
    # Detail panel
    # ------------------------------------------------------------------

    def _row(self, project_id: int) -> PipelineRow:
        for row in self.rows:
            if row.id == project_id:
                return row
        raise EntityNotFoundException(f"Project {project_id} not found")

    def open_panel(self, project_id: int) -> Outcome[PanelState]:
        try:
            row = self._row(project_id)
        except EntityNotFoundException as e:
            return Outcome.failure(e)
        self.panel = DetailPanel(self.gateway, self.permissions, row)
        return self.panel.load_options()

    def _open(self) -> DetailPanel:
        if self.panel is None:
            raise EntityNotFoundException("No project panel is open")
        return self.panel

    def edit_panel(self, change: PanelEdit) -> Outcome[PanelState]:
        try:
            panel = self._open()
        except EntityNotFoundException as e:
            return Outcome.failure(e)
        return panel.edit(change)

    def save_panel(self) -> Outcome[PanelState]:
        try:
            panel = self._open()
        except EntityNotFoundException as e:
            return Outcome.failure(e)

        outcome = panel.save()
        if not outcome.ok:
            return Outcome(error=outcome.error, notice=outcome.notice)

        fields = outcome.value
        if not self._discard_late("save"):
            self.rows = [
                r.model_copy(update={
                    "header": fields.name,
                    "status": fields.status,
                    "sale_id": fields.sale_id,
                    "engineer_id": fields.engineer_id,
                    "sale": self.users.get(fields.sale_id) if fields.sale_id is not None else None,
                    "engineer": self.users.get(fields.engineer_id) if fields.engineer_id is not None else None,
                })
                if r.id == panel.project_id else r
                for r in self.rows
            ]
        return Outcome(value=panel.state(), notice=outcome.notice)

    def close_panel(self) -> Optional[PanelState]:
        if self.panel is None:
            return None
        self.panel.close()
        state = self.panel.state()
        self.panel = None
        return state
