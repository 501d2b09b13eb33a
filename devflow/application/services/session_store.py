"""
Session Store.

Holds the authenticated user for one client. The session is restored from
client storage, established by a PIN login against the users collection,
and cleared on logout.
"""

from typing import List, Optional

import structlog
from pydantic import ValidationError

from devflow.config import Settings, get_settings
from devflow.core.exceptions import AppError, InvalidCredentials, RemoteOperationFailed
from devflow.domain.repositories.gateway import Collection, DataGateway, Query
from devflow.domain.schemas.auth import AuthSession, LoginResult, SessionState, UserRead
from devflow.infrastructure.storage import (
    AUTH_FLAG_KEY,
    USER_KEY,
    ClientStorage,
    encode_stored_user,
    read_stored_user,
)

logger = structlog.get_logger(__name__)

UNEXPECTED_ERROR = "An unexpected error occurred"


class Navigator:
    """Records client-side navigation requested by views."""

    def __init__(self):
        self.history: List[str] = []

    def push(self, path: str) -> None:
        self.history.append(path)

    @property
    def location(self) -> Optional[str]:
        return self.history[-1] if self.history else None


class SessionStore:
    def __init__(
        self,
        gateway: DataGateway,
        storage: ClientStorage,
        navigator: Optional[Navigator] = None,
        settings: Optional[Settings] = None,
    ):
        self.gateway = gateway
        self.storage = storage
        self.navigator = navigator or Navigator()
        self.settings = settings or get_settings()
        self.session = AuthSession()
        self.loading = True
        self.last_error: Optional[AppError] = None

    @property
    def state(self) -> SessionState:
        return SessionState(session=self.session, loading=self.loading)

    def restore(self) -> AuthSession:
        """Load the stored user. Unreadable values are cleared silently."""
        raw = self.storage.get(USER_KEY)
        user = read_stored_user(raw)
        if raw and user is None:
            logger.warning("Discarding unreadable stored user")
            self._clear()
        self.session = AuthSession(user=user, is_authenticated=user is not None)
        self.loading = False
        return self.session

    def _authenticate(self, username: str, pin: str) -> UserRead:
        result = self.gateway.select(Collection.USERS, Query().iexact("username", username))
        result.raise_for_error()
        if len(result.data) != 1:
            raise InvalidCredentials()
        row = result.data[0]
        if row.get("pin") != pin:
            raise InvalidCredentials()
        return UserRead.model_validate({k: v for k, v in row.items() if k != "pin"})

    def login(self, username: str, pin: str) -> LoginResult:
        self.loading = True
        self.last_error = None
        try:
            user = self._authenticate(username, pin)
        except InvalidCredentials as e:
            logger.info("Login rejected", username=username)
            self.last_error = e
            return LoginResult(success=False, error=e.message)
        except (RemoteOperationFailed, ValidationError) as e:
            logger.error("Login failed", username=username, error=str(e))
            self.last_error = RemoteOperationFailed(UNEXPECTED_ERROR)
            return LoginResult(success=False, error=UNEXPECTED_ERROR)
        finally:
            self.loading = False

        self.storage.set(USER_KEY, encode_stored_user(user), max_age=self.settings.USER_COOKIE_MAX_AGE)
        self.storage.set(AUTH_FLAG_KEY, "true", max_age=self.settings.AUTH_COOKIE_MAX_AGE)
        self.session = AuthSession(user=user, is_authenticated=True)
        logger.info("User logged in", user_id=user.id, role=user.role.value)
        return LoginResult(success=True)

    def _clear(self) -> None:
        self.storage.delete(USER_KEY)
        self.storage.delete(AUTH_FLAG_KEY)

    def logout(self) -> None:
        if self.session.user:
            logger.info("User logged out", user_id=self.session.user.id)
        self._clear()
        self.session = AuthSession()
        self.navigator.push("/login")
