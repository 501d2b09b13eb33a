"""Messages API: the admin inbox and the email composer."""

from typing import Optional

from fastapi import APIRouter, Depends, status

from devflow.application.services.composer_service import Capabilities, Composer
from devflow.application.services.inbox_service import InboxView
from devflow.application.services.view_registry import ViewRegistry
from devflow.core.notices import Outcome, respond
from devflow.domain.repositories.gateway import DataGateway
from devflow.domain.schemas.auth import AuthSession
from devflow.domain.schemas.message import ComposeForm
from devflow.interfaces.api.deps import get_current_session
from devflow.interfaces.deps import get_capabilities, get_gateway, get_registry

router = APIRouter(prefix="/api/messages", tags=["Messages"])
compose_router = APIRouter(prefix="/api/compose", tags=["Compose"])


def get_inbox(
    session: AuthSession = Depends(get_current_session),
    gateway: DataGateway = Depends(get_gateway),
    registry: ViewRegistry = Depends(get_registry),
) -> InboxView:
    return registry.get_or_create(session.user.id, "inbox", lambda: InboxView(gateway, session))


def get_composer(
    session: AuthSession = Depends(get_current_session),
    gateway: DataGateway = Depends(get_gateway),
    registry: ViewRegistry = Depends(get_registry),
    capabilities: Capabilities = Depends(get_capabilities),
) -> Composer:
    return registry.get_or_create(
        session.user.id, "composer", lambda: Composer(gateway, session, capabilities)
    )


@router.get("")
def list_messages(inbox: InboxView = Depends(get_inbox)):
    body = respond(inbox.load())
    body["unread"] = inbox.unread_count
    return body


@router.post("/{message_id}/open")
def open_message(message_id: int, inbox: InboxView = Depends(get_inbox)):
    return respond(inbox.open(message_id))


@compose_router.get("")
def get_composer_state(composer: Composer = Depends(get_composer)):
    outcome = composer.load_recipients()
    return respond(Outcome(value=composer.state(), notice=outcome.notice, error=outcome.error))


@compose_router.patch("")
def update_composer(body: ComposeForm, composer: Composer = Depends(get_composer)):
    return respond(Outcome.success(composer.update(body)))


@compose_router.post("/send", status_code=status.HTTP_201_CREATED)
def send_email(body: Optional[ComposeForm] = None, composer: Composer = Depends(get_composer)):
    return respond(composer.send(body))
