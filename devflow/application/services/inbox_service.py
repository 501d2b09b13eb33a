"""Admin inbox: lists messages with their senders and marks them read when opened."""

from typing import List, Optional

import structlog

from devflow.application.services.navigation import HOME_PATH
from devflow.application.services.view_registry import BaseView
from devflow.core.exceptions import EntityNotFoundException, PermissionDenied, RemoteOperationFailed
from devflow.core.notices import Outcome
from devflow.domain.repositories.gateway import Collection, DataGateway, Query
from devflow.domain.roles import Action, Permissions
from devflow.domain.schemas.auth import AuthSession
from devflow.domain.schemas.message import MessageRead, SenderInfo

logger = structlog.get_logger(__name__)


class InboxView(BaseView):
    def __init__(self, gateway: DataGateway, session: AuthSession):
        super().__init__()
        self.gateway = gateway
        self.session = session
        self.permissions = Permissions(session.role)
        self.messages: List[MessageRead] = []
        self.selected: Optional[MessageRead] = None
        self.loading = True

    def _denied(self) -> Outcome:
        return Outcome.failure(
            PermissionDenied("Only admins can access messages"), redirect_to=HOME_PATH
        )

    def _senders(self, sender_ids: List[int]) -> dict:
        if not sender_ids:
            return {}
        result = self.gateway.select(
            Collection.USERS,
            Query().in_("id", sender_ids),
            columns=["id", "name", "username", "role"],
        ).raise_for_error()
        return {u["id"]: SenderInfo(name=u["name"], username=u["username"], role=u["role"]) for u in result.data}

    def load(self) -> Outcome[List[MessageRead]]:
        """Fetch every message newest first with the sender joined in."""
        if not self.permissions.can(Action.READ_INBOX):
            return self._denied()

        try:
            result = self.gateway.select(
                Collection.MESSAGES, Query().order("created_at", desc=True)
            ).raise_for_error()
            senders = self._senders(sorted({m["sender_id"] for m in result.data if m.get("sender_id") is not None}))
        except RemoteOperationFailed as e:
            logger.error("Error fetching messages", error=e.message)
            self.loading = False
            return Outcome.failure(e, "Failed to load messages")

        if self._discard_late("load"):
            return Outcome.success()

        self.messages = [
            MessageRead(**{**row, "sender": senders.get(row.get("sender_id"))})
            for row in result.data
        ]
        self.loading = False
        return Outcome.success(self.messages)

    @property
    def unread_count(self) -> int:
        return sum(1 for m in self.messages if not m.is_read)

    def open(self, message_id: int) -> Outcome[MessageRead]:
        """Select a message. An unread one is marked read exactly once."""
        if not self.permissions.can(Action.READ_INBOX):
            return self._denied()

        message = next((m for m in self.messages if m.id == message_id), None)
        if message is None:
            return Outcome.failure(EntityNotFoundException(f"Message {message_id} not found"))
        self.selected = message

        if message.is_read:
            return Outcome.success(message)

        result = self.gateway.update(Collection.MESSAGES, {"is_read": True}, Query().eq("id", message_id))
        if not result.ok:
            logger.error("Error marking message as read", message_id=message_id, error=result.error.message)
            return Outcome.success(message)

        if not self._discard_late("open"):
            message = message.model_copy(update={"is_read": True})
            self.messages = [message if m.id == message_id else m for m in self.messages]
            self.selected = message
        return Outcome.success(message)

    def close(self) -> None:
        self.selected = None
