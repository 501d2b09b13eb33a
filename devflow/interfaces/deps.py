"""
API Dependencies.
"""

from fastapi import Request, Response

from devflow.application.services.composer_service import Capabilities
from devflow.application.services.session_store import Navigator, SessionStore
from devflow.application.services.view_registry import ViewRegistry
from devflow.domain.repositories.gateway import DataGateway
from devflow.infrastructure.storage import CookieStorage


def get_gateway(request: Request) -> DataGateway:
    """Get the data gateway chosen at startup."""
    return request.app.state.gateway


def get_registry(request: Request) -> ViewRegistry:
    return request.app.state.registry


def get_capabilities(request: Request) -> Capabilities:
    return request.app.state.capabilities


def get_session_store(request: Request, response: Response) -> SessionStore:
    """Session store over the request cookies, restored before use."""
    store = SessionStore(
        gateway=get_gateway(request),
        storage=CookieStorage(request, response),
        navigator=Navigator(),
    )
    store.restore()
    return store
