import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DATA_BACKEND"] = "sql"
os.environ["TIMEZONE"] = "UTC"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timezone  # noqa: E402
from typing import List, Optional  # noqa: E402

import pytest  # noqa: E402

from devflow.domain.models.user import User  # noqa: E402,F401
from devflow.domain.models.project import Project  # noqa: E402,F401
from devflow.domain.models.message import Message  # noqa: E402,F401
from devflow.domain.repositories.gateway import (  # noqa: E402
    Collection,
    GatewayError,
    GatewayResult,
    Query,
)
from devflow.domain.schemas.auth import AuthSession, UserRead  # noqa: E402
from devflow.infrastructure.database import Base, SessionLocal, engine  # noqa: E402
from devflow.infrastructure.repositories.sql_gateway import SQLAlchemyGateway  # noqa: E402

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


class CountingGateway:
    """Wraps a gateway, records every call and can fail chosen verbs."""

    def __init__(self, inner, fail_on: Optional[set] = None, error_code: Optional[str] = None):
        self.inner = inner
        self.calls: List[tuple] = []
        self.fail_on = set(fail_on or ())
        self.error_code = error_code

    def _call(self, verb, collection, *args, **kwargs):
        self.calls.append((verb, Collection(collection).value))
        if verb in self.fail_on:
            return GatewayResult(error=GatewayError(message="simulated failure", code=self.error_code))
        return getattr(self.inner, verb)(collection, *args, **kwargs)

    def select(self, collection, query=None, columns=None):
        return self._call("select", collection, query, columns)

    def insert(self, collection, rows):
        return self._call("insert", collection, rows)

    def update(self, collection, values, query):
        return self._call("update", collection, values, query)

    def delete(self, collection, query):
        return self._call("delete", collection, query)

    def has_column(self, collection, column):
        return self.inner.has_column(collection, column)

    def count(self, verb=None):
        return len([c for c in self.calls if verb is None or c[0] == verb])

    def reset(self):
        self.calls.clear()


@pytest.fixture
def db_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def gateway(db_schema):
    return SQLAlchemyGateway(SessionLocal)


@pytest.fixture
def counting(gateway):
    return CountingGateway(gateway)


def add_user(gateway, username, name, role, pin="1234") -> dict:
    result = gateway.insert(
        Collection.USERS, [{"username": username, "name": name, "role": role, "pin": pin}]
    )
    result.raise_for_error()
    return result.first


def add_project(gateway, name, status="Lead", sale_id=None, engineer_id=None, email=None, created_at=None) -> dict:
    values = {"name": name, "status": status, "sale_id": sale_id, "engineer_id": engineer_id, "email": email}
    if created_at is not None:
        values["created_at"] = created_at
    result = gateway.insert(Collection.PROJECTS, [values])
    result.raise_for_error()
    return result.first


def add_message(gateway, sender_id, subject, content="<p>Body</p>", is_read=False, created_at=None) -> dict:
    values = {"sender_id": sender_id, "subject": subject, "content": content, "is_read": is_read}
    if created_at is not None:
        values["created_at"] = created_at
    result = gateway.insert(Collection.MESSAGES, [values])
    result.raise_for_error()
    return result.first


def session_for(row: dict) -> AuthSession:
    user = UserRead.model_validate({k: v for k, v in row.items() if k != "pin"})
    return AuthSession(user=user, is_authenticated=True)


@pytest.fixture
def team(gateway):
    """An admin, two sales reps and an engineer."""
    return {
        "admin": add_user(gateway, "admin", "Admin User", "admin"),
        "sales": add_user(gateway, "jdoe", "John Doe", "sales"),
        "other_sales": add_user(gateway, "asmith", "Anna Smith", "sales"),
        "engineer": add_user(gateway, "bwayne", "Bruce Wayne", "engineer"),
    }


def rows_of(gateway, collection, query=None) -> List[dict]:
    return gateway.select(collection, query or Query()).raise_for_error().data
