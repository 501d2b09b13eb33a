"""Pipeline API: the project table, its detail panel and the create/delete flows."""

from fastapi import APIRouter, Depends, status

from devflow.application.services.pipeline_view import PipelineView
from devflow.application.services.view_registry import ViewRegistry
from devflow.core.notices import Outcome, respond
from devflow.domain.repositories.gateway import DataGateway
from devflow.domain.schemas.auth import AuthSession
from devflow.domain.schemas.project import (
    PanelEdit,
    ProjectCreate,
    ReorderRequest,
    SelectionRequest,
    TableStateUpdate,
    VisibilityRequest,
)
from devflow.interfaces.api.deps import get_current_session
from devflow.interfaces.deps import get_gateway, get_registry

router = APIRouter(prefix="/api/pipeline", tags=["Pipeline"])


def get_pipeline_view(
    session: AuthSession = Depends(get_current_session),
    gateway: DataGateway = Depends(get_gateway),
    registry: ViewRegistry = Depends(get_registry),
) -> PipelineView:
    return registry.get_or_create(session.user.id, "pipeline", lambda: PipelineView(gateway, session))


@router.get("")
def get_table(view: PipelineView = Depends(get_pipeline_view)):
    if not view.loaded:
        return respond(view.load())
    return respond(Outcome.success(view.page()))


@router.post("/load")
def reload_table(view: PipelineView = Depends(get_pipeline_view)):
    return respond(view.load())


@router.patch("/state")
def update_table_state(body: TableStateUpdate, view: PipelineView = Depends(get_pipeline_view)):
    view.apply(body)
    return respond(Outcome.success(view.page()))


@router.post("/sort/{column}")
def toggle_sort(column: str, view: PipelineView = Depends(get_pipeline_view)):
    view.toggle_sort(column)
    return respond(Outcome.success(view.page()))


@router.post("/visibility")
def set_visibility(body: VisibilityRequest, view: PipelineView = Depends(get_pipeline_view)):
    view.set_visibility(body.column, body.visible)
    return respond(Outcome.success(view.page()))


@router.post("/selection")
def select_rows(body: SelectionRequest, view: PipelineView = Depends(get_pipeline_view)):
    if body.scope == "page":
        view.select_page(body.selected)
    else:
        view.select_row(body.row_id, body.selected)
    return respond(Outcome.success(view.page()))


@router.post("/reorder")
def reorder_rows(body: ReorderRequest, view: PipelineView = Depends(get_pipeline_view)):
    view.reorder(body.active_id, body.over_id)
    return respond(Outcome.success(view.page()))


@router.post("/projects", status_code=status.HTTP_201_CREATED)
def create_project(body: ProjectCreate, view: PipelineView = Depends(get_pipeline_view)):
    return respond(view.create(body))


@router.post("/projects/{project_id}/panel")
def open_panel(project_id: int, view: PipelineView = Depends(get_pipeline_view)):
    return respond(view.open_panel(project_id))


@router.patch("/panel")
def edit_panel(body: PanelEdit, view: PipelineView = Depends(get_pipeline_view)):
    return respond(view.edit_panel(body))


@router.post("/panel/save")
def save_panel(view: PipelineView = Depends(get_pipeline_view)):
    return respond(view.save_panel())


@router.delete("/panel")
def close_panel(view: PipelineView = Depends(get_pipeline_view)):
    return respond(Outcome.success(view.close_panel()))


@router.post("/projects/{project_id}/delete-request")
def request_delete(project_id: int, view: PipelineView = Depends(get_pipeline_view)):
    view.request_delete(project_id)
    return respond(Outcome.success({"pending_delete_id": view.pending_delete_id}))


@router.post("/delete/confirm")
def confirm_delete(view: PipelineView = Depends(get_pipeline_view)):
    return respond(view.confirm_delete())


@router.post("/delete/cancel")
def cancel_delete(view: PipelineView = Depends(get_pipeline_view)):
    view.cancel_delete()
    return respond(Outcome.success({"pending_delete_id": None}))
