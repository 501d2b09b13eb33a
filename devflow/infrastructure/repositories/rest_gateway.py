"""PostgREST-style HTTP client for the hosted data service.

Filters are encoded as query parameters (``status=eq.Lead``), mutations ask
for the stored representation back. There are no retries: a failed call is
reported once as a ``GatewayResult`` error.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional

import httpx

from devflow.config import get_settings
from devflow.domain.repositories.gateway import (
    UNDEFINED_COLUMN,
    Collection,
    GatewayError,
    GatewayResult,
    Predicate,
    Query,
)

settings = get_settings()
logger = logging.getLogger(__name__)


def _literal(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _quoted(value: Any) -> str:
    text = _literal(value)
    if any(ch in text for ch in ',()"'):
        return '"' + text.replace('"', '\\"') + '"'
    return text


def encode_predicate(predicate: Predicate) -> tuple[str, str]:
    op, value = predicate.op, predicate.value
    if op == "eq" and value is None:
        return predicate.column, "is.null"
    if op == "neq" and value is None:
        return predicate.column, "not.is.null"
    if op in ("eq", "neq", "lt", "gte"):
        return predicate.column, f"{op}.{_literal(value)}"
    if op == "ilike":
        return predicate.column, f"ilike.{value}"
    if op == "in":
        return predicate.column, "in.(" + ",".join(_quoted(v) for v in value) + ")"
    if op == "is_null":
        return predicate.column, "is.null"
    if op == "not_null":
        return predicate.column, "not.is.null"
    raise ValueError(f"Unsupported predicate operator: {op}")


def encode_query(query: Optional[Query]) -> List[tuple[str, str]]:
    if query is None:
        return []
    params = [encode_predicate(p) for p in query.predicates]
    if query.ordering:
        params.append(("order", ",".join(f"{c}.{'desc' if d else 'asc'}" for c, d in query.ordering)))
    if query.row_limit is not None:
        params.append(("limit", str(query.row_limit)))
    return params


def _jsonable(row: dict) -> dict:
    return {k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in row.items()}


class RestGateway:
    """Client for a PostgREST-compatible data API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = (base_url or settings.DATA_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.DATA_API_KEY
        self.headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        self.client = client or httpx.Client(timeout=settings.DATA_API_TIMEOUT)

    def _url(self, collection: Collection) -> str:
        return f"{self.base_url}/rest/v1/{Collection(collection).value}"

    def _send(self, method: str, collection: Collection, params, json=None, prefer=None) -> GatewayResult:
        headers = dict(self.headers)
        if prefer:
            headers["Prefer"] = prefer
        try:
            response = self.client.request(
                method, self._url(collection), params=params, json=json, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            try:
                body = e.response.json()
            except ValueError:
                body = {"message": e.response.text[:200] or "No response body"}
            logger.warning(
                f"Data API error: {method} {collection} -> {e.response.status_code} {body.get('message')}"
            )
            return GatewayResult(
                error=GatewayError(
                    message=body.get("message") or str(e),
                    code=str(body["code"]) if body.get("code") is not None else None,
                    details=body.get("details"),
                )
            )
        except httpx.HTTPError as e:
            logger.error(f"Data API connection error: {method} {collection}: {e}")
            return GatewayResult(error=GatewayError(message=str(e)))

        if not response.content:
            return GatewayResult(data=[])
        payload = response.json()
        return GatewayResult(data=payload if isinstance(payload, list) else [payload])

    def select(
        self,
        collection: Collection,
        query: Optional[Query] = None,
        columns: Optional[List[str]] = None,
    ) -> GatewayResult:
        params = [("select", ",".join(columns) if columns else "*")] + encode_query(query)
        return self._send("GET", collection, params)

    def insert(self, collection: Collection, rows: List[dict]) -> GatewayResult:
        return self._send(
            "POST", collection, [], json=[_jsonable(r) for r in rows], prefer="return=representation"
        )

    def update(self, collection: Collection, values: dict, query: Query) -> GatewayResult:
        return self._send(
            "PATCH", collection, encode_query(query), json=_jsonable(values), prefer="return=representation"
        )

    def delete(self, collection: Collection, query: Query) -> GatewayResult:
        return self._send("DELETE", collection, encode_query(query), prefer="return=representation")

    def has_column(self, collection: Collection, column: str) -> bool:
        result = self.select(collection, Query().limit(0), columns=[column])
        if result.error and result.error.code == UNDEFINED_COLUMN:
            return False
        return result.ok

    def close(self):
        self.client.close()
