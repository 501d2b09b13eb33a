"""
Data Gateway Interface.
Defines the contract for reading and mutating the three remote collections.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Optional, Protocol

from pydantic import BaseModel, Field

from devflow.core.exceptions import RemoteOperationFailed, SchemaMismatch

# Postgres SQLSTATE codes, also reported by PostgREST
UNDEFINED_COLUMN = "42703"
UNIQUE_VIOLATION = "23505"


class Collection(str, Enum):
    USERS = "users"
    PROJECTS = "projects"
    MESSAGES = "messages"


@dataclass(frozen=True)
class Predicate:
    column: str
    op: str  # eq, neq, ilike, in, lt, gte, is_null, not_null
    value: Any = None


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class Query:
    """Filter, ordering and limit for a gateway call. Builder methods chain."""

    predicates: List[Predicate] = field(default_factory=list)
    ordering: List[tuple[str, bool]] = field(default_factory=list)
    row_limit: Optional[int] = None

    def _add(self, column: str, op: str, value: Any = None) -> "Query":
        self.predicates.append(Predicate(column, op, value))
        return self

    def eq(self, column: str, value: Any) -> "Query":
        return self._add(column, "eq", value)

    def neq(self, column: str, value: Any) -> "Query":
        return self._add(column, "neq", value)

    def ilike(self, column: str, pattern: str) -> "Query":
        """Case-insensitive LIKE; ``%`` and ``_`` in ``pattern`` are wildcards."""
        return self._add(column, "ilike", pattern)

    def iexact(self, column: str, value: str) -> "Query":
        return self.ilike(column, escape_like(value))

    def startswith(self, column: str, prefix: str) -> "Query":
        return self.ilike(column, escape_like(prefix) + "%")

    def contains(self, column: str, fragment: str) -> "Query":
        return self.ilike(column, "%" + escape_like(fragment) + "%")

    def in_(self, column: str, values: Iterable[Any]) -> "Query":
        return self._add(column, "in", list(values))

    def lt(self, column: str, value: Any) -> "Query":
        return self._add(column, "lt", value)

    def gte(self, column: str, value: Any) -> "Query":
        return self._add(column, "gte", value)

    def is_null(self, column: str) -> "Query":
        return self._add(column, "is_null")

    def not_null(self, column: str) -> "Query":
        return self._add(column, "not_null")

    def order(self, column: str, desc: bool = False) -> "Query":
        self.ordering.append((column, desc))
        return self

    def limit(self, count: int) -> "Query":
        self.row_limit = count
        return self

    @property
    def columns(self) -> set[str]:
        return {p.column for p in self.predicates} | {c for c, _ in self.ordering}


class GatewayError(BaseModel):
    message: str
    code: Optional[str] = None
    details: Optional[Any] = None


class GatewayResult(BaseModel):
    data: List[dict] = Field(default_factory=list)
    error: Optional[GatewayError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def first(self) -> Optional[dict]:
        return self.data[0] if self.data else None

    def raise_for_error(self) -> "GatewayResult":
        if self.error is None:
            return self
        details = {"code": self.error.code} if self.error.code else {}
        if self.error.code == UNDEFINED_COLUMN:
            raise SchemaMismatch(self.error.message, details)
        raise RemoteOperationFailed(self.error.message, details)


class DataGateway(Protocol):
    """Interface for the remote relational data service."""

    def select(
        self,
        collection: Collection,
        query: Optional[Query] = None,
        columns: Optional[List[str]] = None,
    ) -> GatewayResult:
        """Read rows matching the query."""
        ...

    def insert(self, collection: Collection, rows: List[dict]) -> GatewayResult:
        """Insert rows and return them as stored."""
        ...

    def update(self, collection: Collection, values: dict, query: Query) -> GatewayResult:
        """Update rows matching the query and return them."""
        ...

    def delete(self, collection: Collection, query: Query) -> GatewayResult:
        """Delete rows matching the query and return them."""
        ...

    def has_column(self, collection: Collection, column: str) -> bool:
        """Whether the collection exposes a column."""
        ...
