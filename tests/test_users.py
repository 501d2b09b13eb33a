import pytest

from conftest import CountingGateway, rows_of, session_for
from devflow.application.services.user_service import UsersView, derive_username
from devflow.core.exceptions import PermissionDenied, ValidationFailed
from devflow.domain.repositories.gateway import Collection, Query
from devflow.domain.schemas.auth import EmployeeCreate


def test_derive_username():
    assert derive_username("John", "Doe") == "jdoe"
    assert derive_username("Ana", "De Souza") == "ade souza"


def test_lists_non_admin_users_by_name(gateway, team):
    view = UsersView(gateway, session_for(team["admin"]))

    users = view.load().value

    assert [u.name for u in users] == ["Anna Smith", "Bruce Wayne", "John Doe"]


def test_non_admin_redirected(counting, team):
    view = UsersView(counting, session_for(team["engineer"]))

    outcome = view.load()

    assert outcome.notice.message == "Only admins can access this page"
    assert outcome.redirect_to == "/dashboard"
    assert counting.count() == 0


def test_add_employee(gateway, team):
    view = UsersView(gateway, session_for(team["admin"]))
    view.load()

    outcome = view.add_employee(EmployeeCreate(first_name="Clark", last_name="Kent", role="engineer", pin="4321"))

    assert outcome.notice.message == "Employee added successfully"
    assert outcome.value.username == "ckent"
    assert outcome.value.name == "Clark Kent"
    assert view.users[-1].username == "ckent"
    stored = rows_of(gateway, Collection.USERS, Query().eq("username", "ckent"))[0]
    assert stored["pin"] == "4321"
    assert stored["role"] == "engineer"


@pytest.mark.parametrize(
    "form,message",
    [
        (EmployeeCreate(first_name="", last_name="Kent", pin="1234"), "Please fill in all required fields"),
        (EmployeeCreate(first_name="Clark", last_name="", pin="1234"), "Please fill in all required fields"),
        (EmployeeCreate(first_name="Clark", last_name="Kent", pin=""), "Please fill in all required fields"),
        (EmployeeCreate(first_name="Clark", last_name="Kent", pin="123"), "PIN must be at least 4 digits"),
    ],
)
def test_add_employee_validation(counting, team, form, message):
    view = UsersView(counting, session_for(team["admin"]))

    outcome = view.add_employee(form)

    assert isinstance(outcome.error, ValidationFailed)
    assert outcome.notice.message == message
    assert counting.count() == 0


def test_duplicate_username(gateway, team):
    view = UsersView(gateway, session_for(team["admin"]))

    outcome = view.add_employee(EmployeeCreate(first_name="Jane", last_name="Doe", role="sales", pin="1234"))

    assert outcome.notice.message == "Username already exists. Try a different name."


def test_add_employee_other_failure(gateway, team):
    view = UsersView(CountingGateway(gateway, fail_on={"insert"}), session_for(team["admin"]))

    outcome = view.add_employee(EmployeeCreate(first_name="Clark", last_name="Kent", pin="1234"))

    assert outcome.notice.message == "Failed to add employee"


def test_non_admin_delete_denied_without_calls(counting, team):
    view = UsersView(counting, session_for(team["sales"]))

    view.request_delete(team["engineer"]["id"])
    outcome = view.confirm_delete()

    assert isinstance(outcome.error, PermissionDenied)
    assert counting.count() == 0
    assert view.pending_delete_id is None
    assert len(rows_of(counting.inner, Collection.USERS)) == 4


def test_admin_delete(gateway, team):
    view = UsersView(gateway, session_for(team["admin"]))
    view.load()

    view.request_delete(team["engineer"]["id"])
    outcome = view.confirm_delete()

    assert outcome.notice.message == "User deleted successfully"
    assert [u.username for u in view.users] == ["asmith", "jdoe"]


def test_delete_failure(gateway, team):
    view = UsersView(CountingGateway(gateway, fail_on={"delete"}), session_for(team["admin"]))

    view.request_delete(team["engineer"]["id"])
    outcome = view.confirm_delete()

    assert outcome.notice.message == "Failed to delete user"
    assert view.pending_delete_id is None
