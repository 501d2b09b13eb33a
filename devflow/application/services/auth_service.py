"""Auth service: user lookup and default admin provisioning."""

from typing import Optional

import structlog

from devflow.config import Settings, get_settings
from devflow.domain.repositories.gateway import Collection, DataGateway, Query
from devflow.domain.roles import Role

logger = structlog.get_logger(__name__)


def get_user_by_username(gateway: DataGateway, username: str) -> Optional[dict]:
    result = gateway.select(Collection.USERS, Query().iexact("username", username).limit(1))
    return result.raise_for_error().first


def ensure_default_admin(gateway: DataGateway, settings: Optional[Settings] = None) -> bool:
    """Create the configured admin account when it does not exist yet."""
    settings = settings or get_settings()
    if get_user_by_username(gateway, settings.DEFAULT_ADMIN_USERNAME):
        return False

    gateway.insert(
        Collection.USERS,
        [{
            "username": settings.DEFAULT_ADMIN_USERNAME,
            "name": settings.DEFAULT_ADMIN_NAME,
            "pin": settings.DEFAULT_ADMIN_PIN,
            "role": Role.ADMIN.value,
        }],
    ).raise_for_error()
    logger.info("Default admin user created", username=settings.DEFAULT_ADMIN_USERNAME)
    return True
