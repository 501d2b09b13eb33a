from datetime import timedelta

from conftest import NOW, CountingGateway, add_message, rows_of, session_for
from devflow.application.services.inbox_service import InboxView
from devflow.core.exceptions import PermissionDenied
from devflow.domain.repositories.gateway import Collection


def test_non_admin_is_redirected(counting, team):
    inbox = InboxView(counting, session_for(team["sales"]))

    outcome = inbox.load()

    assert isinstance(outcome.error, PermissionDenied)
    assert outcome.notice.message == "Only admins can access messages"
    assert outcome.redirect_to == "/dashboard"
    assert counting.count() == 0


def test_lists_newest_first_with_sender(gateway, team):
    add_message(gateway, team["sales"]["id"], "First", created_at=NOW - timedelta(days=1))
    add_message(gateway, team["engineer"]["id"], "Second", created_at=NOW)
    inbox = InboxView(gateway, session_for(team["admin"]))

    messages = inbox.load().value

    assert [m.subject for m in messages] == ["Second", "First"]
    assert messages[0].sender.name == "Bruce Wayne"
    assert messages[0].sender.role == "engineer"
    assert messages[1].sender.username == "jdoe"
    assert inbox.unread_count == 2


def test_open_unread_marks_read_exactly_once(counting, team):
    message = add_message(counting.inner, team["sales"]["id"], "Hello")
    inbox = InboxView(counting, session_for(team["admin"]))
    inbox.load()
    counting.reset()

    opened = inbox.open(message["id"]).value

    assert opened.is_read
    assert inbox.messages[0].is_read
    assert counting.calls == [("update", "messages")]
    assert rows_of(counting.inner, Collection.MESSAGES)[0]["is_read"] is True

    counting.reset()
    inbox.open(message["id"])
    assert counting.count() == 0


def test_open_already_read_issues_no_update(counting, team):
    message = add_message(counting.inner, team["sales"]["id"], "Hello", is_read=True)
    inbox = InboxView(counting, session_for(team["admin"]))
    inbox.load()
    counting.reset()

    inbox.open(message["id"])

    assert counting.count() == 0
    assert inbox.selected.id == message["id"]


def test_load_failure_notice(gateway, team):
    inbox = InboxView(CountingGateway(gateway, fail_on={"select"}), session_for(team["admin"]))

    outcome = inbox.load()

    assert outcome.notice.message == "Failed to load messages"
    assert not inbox.loading
