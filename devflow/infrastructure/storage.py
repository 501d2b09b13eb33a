"""
Client-held storage for the session projection.

Two keys are kept: ``user`` holds the serialized user (without PIN) and
``authenticated`` is a bare flag read only by the route guard. Over HTTP
both live in cookies; tests use the in-memory implementation.
"""

import base64
import json
from typing import Dict, Optional, Protocol

from fastapi import Request, Response
from pydantic import ValidationError

from devflow.config import Settings, get_settings
from devflow.domain.schemas.auth import UserRead

USER_KEY = "user"
AUTH_FLAG_KEY = "authenticated"


def encode_stored_user(user: UserRead) -> str:
    payload = user.model_dump_json(exclude={"created_at", "updated_at"})
    return base64.urlsafe_b64encode(payload.encode()).decode()


def read_stored_user(raw: Optional[str]) -> Optional[UserRead]:
    """Parse a stored user value, ``None`` when absent or unreadable."""
    if not raw:
        return None
    try:
        payload = base64.urlsafe_b64decode(raw.encode()).decode()
        return UserRead.model_validate(json.loads(payload))
    except (ValueError, ValidationError):
        return None


class ClientStorage(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str, max_age: Optional[int] = None) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryStorage:
    """Dict-backed storage, max-age is recorded but never enforced."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(initial or {})
        self.max_ages: Dict[str, Optional[int]] = {}

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str, max_age: Optional[int] = None) -> None:
        self.values[key] = value
        self.max_ages[key] = max_age

    def delete(self, key: str) -> None:
        self.values.pop(key, None)
        self.max_ages.pop(key, None)


class CookieStorage:
    """Reads request cookies and writes changes onto the outgoing response."""

    def __init__(self, request: Request, response: Response, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.response = response
        self._values: Dict[str, Optional[str]] = dict(request.cookies)

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str, max_age: Optional[int] = None) -> None:
        self._values[key] = value
        self.response.set_cookie(
            key,
            value,
            max_age=max_age,
            path="/",
            samesite="lax",
            secure=self.settings.COOKIE_SECURE,
        )

    def delete(self, key: str) -> None:
        self._values.pop(key, None)
        self.response.delete_cookie(key, path="/")
