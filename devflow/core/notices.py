"""
Transient user notices and the outcome type returned by portal views.

Views never raise for expected failures. They return an ``Outcome`` holding
either a value or the ``AppError`` that stopped them, plus the notice a
toast widget would show. Routes unwrap outcomes and re-raise the error so
the global exception handler renders it.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel

from devflow.core.exceptions import AppError

T = TypeVar("T")


class Notice(BaseModel):
    level: Literal["success", "error", "info"]
    message: str
    code: Optional[str] = None


@dataclass
class Outcome(Generic[T]):
    value: Optional[T] = None
    notice: Optional[Notice] = None
    error: Optional[AppError] = None
    redirect_to: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None, message: Optional[str] = None) -> "Outcome[T]":
        notice = Notice(level="success", message=message) if message else None
        return cls(value=value, notice=notice)

    @classmethod
    def failure(
        cls,
        error: AppError,
        message: Optional[str] = None,
        redirect_to: Optional[str] = None,
    ) -> "Outcome[T]":
        return cls(
            error=error,
            notice=Notice(level="error", message=message or error.message, code=error.code),
            redirect_to=redirect_to,
        )

    def unwrap(self) -> Optional[T]:
        """Return the value or raise the error that stopped the view."""
        if self.error is not None:
            if self.redirect_to:
                self.error.details.setdefault("redirect_to", self.redirect_to)
            if self.notice and self.notice.message != self.error.message:
                self.error.details.setdefault("notice", self.notice.message)
            raise self.error
        return self.value


def respond(outcome: Outcome) -> dict:
    """Response body for a view outcome: the value plus its notice."""
    value = outcome.unwrap()
    return {"data": value, "notice": outcome.notice}
