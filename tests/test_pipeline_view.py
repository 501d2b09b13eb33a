from datetime import timedelta

import pytest

from conftest import NOW, CountingGateway, add_project, rows_of, session_for
from devflow.application.services.pipeline_view import PipelineView
from devflow.core.exceptions import PermissionDenied, ValidationFailed
from devflow.domain.repositories.gateway import Collection
from devflow.domain.schemas.project import PanelEdit, ProjectCreate


@pytest.fixture
def projects(gateway, team):
    sales, other, engineer = team["sales"], team["other_sales"], team["engineer"]
    return [
        add_project(gateway, "Acme", "Lead", sale_id=sales["id"], engineer_id=engineer["id"],
                    created_at=NOW - timedelta(days=3)),
        add_project(gateway, "Globex", "Client", sale_id=other["id"], created_at=NOW - timedelta(days=2)),
        add_project(gateway, "Initech", "Completed", sale_id=sales["id"], created_at=NOW - timedelta(days=1)),
        add_project(gateway, "Umbrella", "In Development", sale_id=999, created_at=NOW),
    ]


def loaded(gateway, user):
    view = PipelineView(gateway, session_for(user))
    assert view.load().ok
    return view


def test_admin_load_is_newest_first_with_resolved_names(gateway, team, projects):
    view = loaded(gateway, team["admin"])

    assert [r.header for r in view.rows] == ["Umbrella", "Initech", "Globex", "Acme"]
    acme = view.rows[-1]
    assert acme.sale == "John Doe"
    assert acme.engineer == "Bruce Wayne"


def test_unknown_reference_shows_na_but_keeps_id(gateway, team, projects):
    view = loaded(gateway, team["admin"])

    umbrella = view.rows[0]
    assert umbrella.sale is None
    assert umbrella.sale_label == "N/A"
    assert umbrella.sale_id == 999
    assert umbrella.engineer_id is None
    assert umbrella.engineer_label == "N/A"


def test_sales_only_sees_own_projects(gateway, team, projects):
    view = loaded(gateway, team["sales"])

    assert {r.header for r in view.rows} == {"Acme", "Initech"}
    assert all(r.sale_id == team["sales"]["id"] for r in view.rows)


def test_load_failure_surfaces_notice(gateway, team, projects):
    view = PipelineView(CountingGateway(gateway, fail_on={"select"}), session_for(team["admin"]))

    outcome = view.load()

    assert not outcome.ok
    assert outcome.notice.message == "Failed to load projects"
    assert view.rows == []
    assert not view.loading


def test_tabs_filter_locally_without_querying(counting, team, projects):
    view = loaded(counting, team["admin"])
    counting.reset()

    view.select_tab("Client")
    assert [r.header for r in view.page().rows] == ["Globex"]
    assert view.page().tab == "Client"

    view.select_tab("all")
    assert view.page().filtered_count == 4
    assert counting.count() == 0

    with pytest.raises(ValidationFailed):
        view.select_tab("Archived")


def test_global_filter_searches_names_case_insensitively(gateway, team, projects):
    view = loaded(gateway, team["admin"])

    view.set_global_filter("john")
    assert {r.header for r in view.page().rows} == {"Acme", "Initech"}

    view.set_global_filter("GLOB")
    assert [r.header for r in view.page().rows] == ["Globex"]


def test_sort_toggles_between_ascending_and_descending(gateway, team, projects):
    view = loaded(gateway, team["admin"])

    view.toggle_sort("header")
    assert [r.header for r in view.page().rows] == ["Acme", "Globex", "Initech", "Umbrella"]

    view.toggle_sort("header")
    assert view.sorting[0].desc
    assert [r.header for r in view.page().rows] == ["Umbrella", "Initech", "Globex", "Acme"]

    view.toggle_sort("header")
    assert not view.sorting[0].desc

    view.toggle_sort("status")
    assert [s.id for s in view.sorting] == ["status"]


def test_only_status_sale_engineer_are_hideable(gateway, team, projects):
    view = loaded(gateway, team["admin"])

    view.set_visibility("engineer", False)
    assert view.page().column_visibility == {"status": True, "sale": True, "engineer": False}

    with pytest.raises(ValidationFailed):
        view.set_visibility("header", False)


def test_pagination_and_page_size(gateway, team):
    for i in range(25):
        add_project(gateway, f"Project {i:02d}", created_at=NOW - timedelta(minutes=i))
    view = loaded(gateway, team["admin"])

    page = view.page()
    assert page.page_size == 10
    assert page.page_count == 3
    assert len(page.rows) == 10
    assert not page.can_previous and page.can_next

    view.set_page_index(2)
    page = view.page()
    assert len(page.rows) == 5
    assert page.can_previous and not page.can_next

    view.set_page_index(1)
    view.set_page_size(20)
    assert view.page_index == 0

    view.set_page_size(10)
    view.set_page_index(2)
    view.set_page_size(20)
    assert view.page_index == 1
    assert view.page().rows[0].header == "Project 20"

    with pytest.raises(ValidationFailed):
        view.set_page_size(15)


def test_filter_change_resets_to_first_page(gateway, team):
    for i in range(15):
        add_project(gateway, f"Project {i:02d}", created_at=NOW - timedelta(minutes=i))
    view = loaded(gateway, team["admin"])
    view.set_page_index(1)

    view.set_global_filter("project")

    assert view.page_index == 0


def test_selection_label_counts_filtered_rows(gateway, team, projects):
    view = loaded(gateway, team["admin"])
    ids = {r.header: r.id for r in view.rows}

    view.select_row(ids["Acme"])
    view.select_row(ids["Globex"])
    assert view.page().selection_label == "2 of 4 row(s) selected."

    view.select_tab("Lead")
    assert view.page().selection_label == "1 of 1 row(s) selected."

    view.select_tab("all")
    view.select_page(False)
    assert view.page().selected_count == 0

    view.select_page(True)
    assert view.page().selection_label == "4 of 4 row(s) selected."


def test_reorder_moves_row_in_memory_only(counting, team, projects):
    view = loaded(counting, team["admin"])
    counting.reset()
    first, last = view.rows[0].id, view.rows[-1].id

    view.reorder(first, last)

    assert view.rows[-1].id == first
    assert counting.count() == 0


def test_create_requires_name_and_status(counting, team):
    view = loaded(counting, team["admin"])
    counting.reset()

    no_name = view.create(ProjectCreate(name="  ", status="Lead"))
    no_status = view.create(ProjectCreate(name="Acme", status=""))

    assert no_name.notice.message == "Please enter a project name"
    assert no_status.notice.message == "Please select a status"
    assert isinstance(no_name.error, ValidationFailed)
    assert counting.count() == 0


def test_sales_create_forces_own_sale_id(gateway, team):
    view = loaded(gateway, team["sales"])

    outcome = view.create(ProjectCreate(name="Hooli", status="Lead", sale_id=team["other_sales"]["id"]))

    assert outcome.ok
    assert outcome.notice.message == "Client added successfully"
    assert outcome.value.sale_id == team["sales"]["id"]
    assert outcome.value.sale == "John Doe"
    stored = rows_of(gateway, Collection.PROJECTS)
    assert stored[0]["sale_id"] == team["sales"]["id"]


def test_engineer_create_drops_sale_rep(gateway, team):
    view = loaded(gateway, team["engineer"])

    outcome = view.create(ProjectCreate(name="Hooli", status="Lead", sale_id=team["sales"]["id"]))

    assert outcome.value.sale_id is None


def test_admin_create_appends_row_without_refetch(counting, team, projects):
    view = loaded(counting, team["admin"])
    counting.reset()

    outcome = view.create(ProjectCreate(
        name="Hooli", status="Client", sale_id=team["sales"]["id"], engineer_id=team["engineer"]["id"],
    ))

    assert view.rows[-1].header == "Hooli"
    assert view.rows[-1].engineer == "Bruce Wayne"
    assert outcome.value.id is not None
    assert counting.count("select") == 1  # name lookup, no reload of projects
    assert ("select", "projects") not in counting.calls


def test_create_failure_notice(gateway, team):
    view = loaded(gateway, team["admin"])
    view.gateway = CountingGateway(gateway, fail_on={"insert"})

    outcome = view.create(ProjectCreate(name="Hooli", status="Lead"))

    assert outcome.notice.message == "Failed to add client"
    assert view.rows == []


def test_non_admin_delete_is_denied_without_calls(counting, team, projects):
    view = loaded(counting, team["sales"])
    before = list(view.rows)
    counting.reset()

    view.request_delete(before[0].id)
    outcome = view.confirm_delete()

    assert isinstance(outcome.error, PermissionDenied)
    assert outcome.notice.message == "You do not have permission to delete clients"
    assert counting.count() == 0
    assert view.rows == before
    assert view.pending_delete_id is None


def test_admin_delete_removes_exactly_one_row(gateway, team, projects):
    view = loaded(gateway, team["admin"])
    target = view.rows[1].id

    view.request_delete(target)
    outcome = view.confirm_delete()

    assert outcome.notice.message == "Client deleted successfully"
    assert target not in {r.id for r in view.rows}
    assert len(view.rows) == 3
    assert len(rows_of(gateway, Collection.PROJECTS)) == 3


def test_confirm_without_pending_and_cancel_are_noops(counting, team, projects):
    view = loaded(counting, team["admin"])
    counting.reset()

    assert view.confirm_delete().ok
    view.request_delete(view.rows[0].id)
    view.cancel_delete()
    assert view.pending_delete_id is None
    assert view.confirm_delete().ok
    assert counting.count() == 0
    assert len(view.rows) == 4


def test_results_after_unmount_are_discarded(gateway, team, projects):
    view = PipelineView(gateway, session_for(team["admin"]))
    view.unmount()

    view.load()

    assert view.rows == []


def test_panel_save_applies_to_local_row(gateway, team, projects):
    view = loaded(gateway, team["admin"])
    acme = next(r for r in view.rows if r.header == "Acme")

    assert view.open_panel(acme.id).ok
    view.edit_panel(PanelEdit(name="Acme Corp", sale_id=team["other_sales"]["id"]))
    outcome = view.save_panel()

    assert outcome.notice.message == "Project updated successfully"
    assert not outcome.value.dirty
    row = next(r for r in view.rows if r.id == acme.id)
    assert row.header == "Acme Corp"
    assert row.sale == "Anna Smith"
    stored = rows_of(gateway, Collection.PROJECTS)
    assert {r["name"] for r in stored} >= {"Acme Corp"}
