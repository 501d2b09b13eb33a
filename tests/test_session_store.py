import pytest

from conftest import CountingGateway, add_user
from devflow.application.services.session_store import Navigator, SessionStore
from devflow.domain.roles import Role
from devflow.infrastructure.storage import (
    AUTH_FLAG_KEY,
    USER_KEY,
    MemoryStorage,
    read_stored_user,
)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(gateway, storage):
    add_user(gateway, "bob", "Bob Stone", "sales", pin="1234")
    return SessionStore(gateway, storage, Navigator())


@pytest.mark.parametrize("username", ["bob", "Bob", "BOB"])
def test_login_is_case_insensitive(store, storage, username):
    result = store.login(username, "1234")

    assert result.success
    assert result.error is None
    assert store.session.is_authenticated
    assert store.session.user.username == "bob"
    assert store.session.role is Role.SALES
    assert storage.get(AUTH_FLAG_KEY) == "true"
    assert storage.max_ages[AUTH_FLAG_KEY] == 60 * 60 * 24 * 30


def test_stored_user_has_no_pin(store, storage):
    store.login("bob", "1234")

    raw = storage.get(USER_KEY)
    user = read_stored_user(raw)
    assert user.username == "bob"
    assert "pin" not in user.model_dump()


@pytest.mark.parametrize("username,pin", [("bob", "0000"), ("alice", "1234"), ("bo%", "1234")])
def test_login_rejected(store, storage, username, pin):
    result = store.login(username, pin)

    assert not result.success
    assert result.error == "Invalid username or PIN"
    assert not store.session.is_authenticated
    assert storage.get(USER_KEY) is None
    assert storage.get(AUTH_FLAG_KEY) is None
    assert store.loading is False


def test_login_gateway_failure_is_unexpected_error(gateway, storage):
    failing = CountingGateway(gateway, fail_on={"select"})
    store = SessionStore(failing, storage)

    result = store.login("bob", "1234")

    assert not result.success
    assert result.error == "An unexpected error occurred"
    assert store.last_error.status_code == 502


def test_restore_reads_stored_user(store, storage, gateway):
    store.login("bob", "1234")

    restored = SessionStore(gateway, storage)
    assert restored.loading is True
    session = restored.restore()

    assert restored.loading is False
    assert session.is_authenticated
    assert session.user.name == "Bob Stone"


def test_restore_clears_unreadable_values(gateway):
    storage = MemoryStorage({USER_KEY: "not-a-user", AUTH_FLAG_KEY: "true"})
    store = SessionStore(gateway, storage)

    session = store.restore()

    assert not session.is_authenticated
    assert storage.get(USER_KEY) is None
    assert storage.get(AUTH_FLAG_KEY) is None


def test_logout_clears_storage_and_navigates_to_login(store, storage):
    store.login("bob", "1234")

    store.logout()

    assert not store.session.is_authenticated
    assert store.session.user is None
    assert storage.values == {}
    assert store.navigator.location == "/login"
