"""
SQLAlchemy implementation of the Data Gateway.

Tables are reflected from the live database so a deployment whose schema
lags behind the models (e.g. no ``messages.recipient_email``) reports an
undefined column instead of failing every statement. Each call opens and
commits its own session, the way a remote call would.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import MetaData, Table, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from devflow.domain.repositories.gateway import (
    UNDEFINED_COLUMN,
    UNIQUE_VIOLATION,
    Collection,
    GatewayError,
    GatewayResult,
    Predicate,
    Query,
)

logger = structlog.get_logger(__name__)


class UnknownColumn(Exception):
    def __init__(self, table: str, column: str):
        self.table = table
        self.column = column
        super().__init__(f'column "{column}" of relation "{table}" does not exist')


class SQLAlchemyGateway:
    """Gateway implementation for SQLAlchemy-reachable databases."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self._tables: Dict[str, Table] = {}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _table(self, db: Session, collection: Collection) -> Table:
        name = Collection(collection).value
        if name not in self._tables:
            self._tables[name] = Table(name, MetaData(), autoload_with=db.connection())
        return self._tables[name]

    def _column(self, table: Table, name: str):
        if name not in table.c:
            raise UnknownColumn(table.name, name)
        return table.c[name]

    def _bind(self, db: Session, value: Any) -> Any:
        if isinstance(value, datetime) and value.tzinfo is not None:
            if db.get_bind().dialect.name == "sqlite":
                return value.astimezone(timezone.utc).replace(tzinfo=None)
        if isinstance(value, list):
            return [self._bind(db, v) for v in value]
        return value

    def _clause(self, db: Session, table: Table, predicate: Predicate):
        col = self._column(table, predicate.column)
        value = self._bind(db, predicate.value)
        if predicate.op == "eq":
            return col.is_(None) if value is None else col == value
        if predicate.op == "neq":
            return col.isnot(None) if value is None else col != value
        if predicate.op == "ilike":
            return col.ilike(value, escape="\\")
        if predicate.op == "in":
            return col.in_(value)
        if predicate.op == "lt":
            return col < value
        if predicate.op == "gte":
            return col >= value
        if predicate.op == "is_null":
            return col.is_(None)
        if predicate.op == "not_null":
            return col.isnot(None)
        raise ValueError(f"Unsupported predicate operator: {predicate.op}")

    def _where(self, db: Session, table: Table, stmt, query: Optional[Query]):
        if query is None:
            return stmt
        for predicate in query.predicates:
            stmt = stmt.where(self._clause(db, table, predicate))
        return stmt

    @staticmethod
    def _row(mapping) -> dict:
        row = dict(mapping)
        for key, value in row.items():
            if isinstance(value, datetime) and value.tzinfo is None:
                row[key] = value.replace(tzinfo=timezone.utc)
        return row

    def _run(self, collection: Collection, verb: str, build) -> GatewayResult:
        collection = Collection(collection)
        try:
            with self.session_factory() as db:
                table = self._table(db, collection)
                rows = build(db, table)
                db.commit()
                return GatewayResult(data=rows)
        except UnknownColumn as exc:
            logger.warning("Gateway column missing", collection=collection.value, verb=verb, column=exc.column)
            return GatewayResult(error=GatewayError(message=str(exc), code=UNDEFINED_COLUMN))
        except IntegrityError as exc:
            logger.warning("Gateway integrity error", collection=collection.value, verb=verb, error=str(exc.orig))
            message = str(exc.orig)
            code = UNIQUE_VIOLATION if "unique" in message.lower() else getattr(exc.orig, "pgcode", None)
            return GatewayResult(error=GatewayError(message=message, code=code))
        except SQLAlchemyError as exc:
            logger.error("Gateway call failed", collection=collection.value, verb=verb, error=str(exc))
            return GatewayResult(error=GatewayError(message=str(exc), code=getattr(getattr(exc, "orig", None), "pgcode", None)))

    # ------------------------------------------------------------------
    # DataGateway
    # ------------------------------------------------------------------

    def select(
        self,
        collection: Collection,
        query: Optional[Query] = None,
        columns: Optional[List[str]] = None,
    ) -> GatewayResult:
        def build(db: Session, table: Table) -> List[dict]:
            cols = [self._column(table, c) for c in columns] if columns else list(table.c)
            stmt = self._where(db, table, select(*cols), query)
            if query is not None:
                for name, desc in query.ordering:
                    col = self._column(table, name)
                    stmt = stmt.order_by(col.desc() if desc else col.asc())
                if query.row_limit is not None:
                    stmt = stmt.limit(query.row_limit)
            return [self._row(r._mapping) for r in db.execute(stmt)]

        return self._run(collection, "select", build)

    def insert(self, collection: Collection, rows: List[dict]) -> GatewayResult:
        def build(db: Session, table: Table) -> List[dict]:
            inserted = []
            for row in rows:
                values = {self._column(table, k).name: self._bind(db, v) for k, v in row.items()}
                stmt = table.insert().values(**values).returning(*table.c)
                inserted.append(self._row(db.execute(stmt).one()._mapping))
            return inserted

        return self._run(collection, "insert", build)

    def update(self, collection: Collection, values: dict, query: Query) -> GatewayResult:
        def build(db: Session, table: Table) -> List[dict]:
            data = {self._column(table, k).name: self._bind(db, v) for k, v in values.items()}
            if "updated_at" in table.c and "updated_at" not in data:
                data["updated_at"] = func.now()
            stmt = self._where(db, table, table.update(), query).values(**data).returning(*table.c)
            return [self._row(r._mapping) for r in db.execute(stmt)]

        return self._run(collection, "update", build)

    def delete(self, collection: Collection, query: Query) -> GatewayResult:
        def build(db: Session, table: Table) -> List[dict]:
            stmt = self._where(db, table, table.delete(), query).returning(*table.c)
            return [self._row(r._mapping) for r in db.execute(stmt)]

        return self._run(collection, "delete", build)

    def has_column(self, collection: Collection, column: str) -> bool:
        try:
            with self.session_factory() as db:
                return column in self._table(db, collection).c
        except SQLAlchemyError as exc:
            logger.warning("Could not inspect collection", collection=collection.value, error=str(exc))
            return False
