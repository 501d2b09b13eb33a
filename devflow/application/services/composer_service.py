"""
Email composer.

Recipients are the caller's Lead and Client projects that carry an email,
and only a listed recipient can be addressed. A sent email is stored as a
message. When the messages collection has no ``recipient_email`` column the
address is embedded in the subject and body instead.
"""

from typing import List, Optional

import structlog
from pydantic import BaseModel

from devflow.application.services.view_registry import BaseView
from devflow.core.exceptions import (
    RemoteOperationFailed,
    SchemaMismatch,
    UnauthorizedException,
    ValidationFailed,
)
from devflow.core.notices import Outcome
from devflow.domain.repositories.gateway import Collection, DataGateway, Query
from devflow.domain.roles import Permissions
from devflow.domain.schemas.auth import AuthSession
from devflow.domain.schemas.message import (
    DEFAULT_CONTENT,
    ComposeForm,
    ComposerState,
    MessageRead,
    Recipient,
)
from devflow.domain.schemas.project import ProjectStatus

logger = structlog.get_logger(__name__)

EMPTY_BODIES = (DEFAULT_CONTENT, "<p></p>")


class Capabilities(BaseModel):
    """Optional schema features, resolved once at startup."""
    recipient_email: bool = True


def detect_capabilities(gateway: DataGateway) -> Capabilities:
    capabilities = Capabilities(
        recipient_email=gateway.has_column(Collection.MESSAGES, "recipient_email"),
    )
    logger.info("Resolved data capabilities", recipient_email=capabilities.recipient_email)
    return capabilities


def fallback_message(email: str, subject: str, content: str) -> dict:
    return {
        "subject": f"Email to {email}: {subject}",
        "content": f"<p><strong>To: {email}</strong></p>{content}",
    }


class Composer(BaseView):
    def __init__(self, gateway: DataGateway, session: AuthSession, capabilities: Capabilities):
        super().__init__()
        self.gateway = gateway
        self.session = session
        self.permissions = Permissions(session.role)
        self.capabilities = capabilities
        self.recipients: List[Recipient] = []
        self.loading = False
        self.sending = False
        self.reset()

    def reset(self) -> None:
        self.subject = ""
        self.content = DEFAULT_CONTENT
        self.recipient_email = ""

    def load_recipients(self) -> Outcome[List[Recipient]]:
        if not self.session.user:
            return Outcome.success(self.recipients)

        query = (
            Query()
            .in_("status", [ProjectStatus.LEAD.value, ProjectStatus.CLIENT.value])
            .not_null("email")
            .order("name")
        )
        if self.permissions.is_sales:
            query.eq("sale_id", self.session.user.id)

        self.loading = True
        try:
            result = self.gateway.select(
                Collection.PROJECTS, query, columns=["id", "name", "email"]
            ).raise_for_error()
        except RemoteOperationFailed as e:
            logger.error("Error fetching clients", error=e.message)
            return Outcome.failure(e, "Failed to load clients")
        finally:
            self.loading = False

        if self._discard_late("recipients"):
            return Outcome.success([])
        self.recipients = [
            Recipient(id=row["id"], header=row["name"], email=row["email"])
            for row in result.data
            if row.get("email")
        ]
        return Outcome.success(self.recipients)

    def update(self, form: ComposeForm) -> ComposerState:
        for name, value in form.model_dump(exclude_unset=True).items():
            setattr(self, name, value if value is not None else "")
        return self.state()

    def _validate(self) -> None:
        if not self.subject.strip():
            raise ValidationFailed("Please enter a subject")
        if self.content in EMPTY_BODIES or not self.content.strip():
            raise ValidationFailed("Please enter a message")
        if not self.recipient_email:
            raise ValidationFailed("Please select a client email")
        if not self.session.user:
            raise UnauthorizedException("You need to be logged in to send emails")
        if not self._is_listed(self.recipient_email):
            loaded = self.load_recipients()
            if not loaded.ok:
                raise loaded.error
            if not self._is_listed(self.recipient_email):
                raise ValidationFailed("Please select a client email")

    def _is_listed(self, email: str) -> bool:
        return any(r.email == email for r in self.recipients)

    def _insert(self, values: dict) -> Optional[dict]:
        return self.gateway.insert(Collection.MESSAGES, [values]).raise_for_error().first

    def send(self, form: Optional[ComposeForm] = None) -> Outcome[MessageRead]:
        if form is not None:
            self.update(form)
        try:
            self._validate()
        except (ValidationFailed, UnauthorizedException) as e:
            return Outcome.failure(e)
        except RemoteOperationFailed as e:
            return Outcome.failure(e, "Failed to load clients")

        sender_id = self.session.user.id
        email = self.recipient_email
        self.sending = True
        try:
            stored = None
            if self.capabilities.recipient_email:
                try:
                    stored = self._insert({
                        "sender_id": sender_id,
                        "recipient_email": email,
                        "subject": self.subject,
                        "content": self.content,
                    })
                except SchemaMismatch:
                    logger.warning("recipient_email not available in messages, falling back")
                    self.capabilities.recipient_email = False
            if not self.capabilities.recipient_email:
                stored = self._insert({"sender_id": sender_id, **fallback_message(email, self.subject, self.content)})
        except RemoteOperationFailed as e:
            logger.error("Error sending email", error=e.message)
            return Outcome.failure(e, "Failed to send email")
        finally:
            self.sending = False

        logger.info("Email stored", sender_id=sender_id, embedded_recipient=not self.capabilities.recipient_email)
        self.reset()
        message = MessageRead.model_validate(stored) if stored else None
        return Outcome.success(message, "Email sent successfully")

    def state(self) -> ComposerState:
        return ComposerState(
            subject=self.subject,
            content=self.content,
            recipient_email=self.recipient_email,
            recipients=self.recipients,
            loading=self.loading,
            sending=self.sending,
            recipient_field_available=self.capabilities.recipient_email,
        )
