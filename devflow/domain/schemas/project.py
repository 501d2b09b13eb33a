"""Pydantic schemas for the Project (pipeline record) domain."""

from enum import Enum
from pydantic import BaseModel, computed_field
from datetime import datetime
from typing import Literal, Optional


class ProjectStatus(str, Enum):
    LEAD = "Lead"
    CLIENT = "Client"
    IN_DEVELOPMENT = "In Development"
    COMPLETED = "Completed"


STATUS_ORDER = [s.value for s in ProjectStatus]


class ProjectRecord(BaseModel):
    """A row of the projects collection as the gateway returns it."""
    id: int
    name: str
    status: str
    sale_id: Optional[int] = None
    engineer_id: Optional[int] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PipelineRow(BaseModel):
    """A project as the pipeline table holds it."""
    id: int
    header: str
    status: str
    sale: Optional[str] = None
    engineer: Optional[str] = None
    sale_id: Optional[int] = None
    engineer_id: Optional[int] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None

    @computed_field
    @property
    def sale_label(self) -> str:
        return self.sale or "N/A"

    @computed_field
    @property
    def engineer_label(self) -> str:
        return self.engineer or "N/A"


class ProjectCreate(BaseModel):
    name: str = ""
    status: Optional[str] = ProjectStatus.LEAD.value
    sale_id: Optional[int] = None
    engineer_id: Optional[int] = None


class PanelFields(BaseModel):
    """Editable fields of the detail panel."""
    name: str
    status: str
    sale_id: Optional[int] = None
    engineer_id: Optional[int] = None


class PanelEdit(BaseModel):
    name: Optional[str] = None
    status: Optional[str] = None
    sale_id: Optional[int] = None
    engineer_id: Optional[int] = None


class SortSpec(BaseModel):
    id: str
    desc: bool = False


class TableStateUpdate(BaseModel):
    global_filter: Optional[str] = None
    page_index: Optional[int] = None
    page_size: Optional[int] = None
    tab: Optional[str] = None


class ReorderRequest(BaseModel):
    active_id: int
    over_id: int


class SelectionRequest(BaseModel):
    row_id: Optional[int] = None
    selected: bool = True
    scope: Literal["row", "page"] = "row"


class VisibilityRequest(BaseModel):
    column: str
    visible: bool


class UserOption(BaseModel):
    id: int
    name: str


class TablePage(BaseModel):
    rows: list[PipelineRow]
    page_index: int
    page_size: int
    page_count: int
    can_previous: bool
    can_next: bool
    filtered_count: int
    total_count: int
    selected_count: int
    selection_label: str
    sorting: list[SortSpec]
    column_filters: dict[str, str]
    global_filter: str
    column_visibility: dict[str, bool]
    tab: str
    loading: bool


class PanelState(BaseModel):
    project_id: int
    title: str
    fields: PanelFields
    snapshot: PanelFields
    editable: bool
    dirty: bool
    can_save: bool
    sales_options: list[UserOption]
    engineer_options: list[UserOption]
    hint: str
