import secrets
from collections.abc import Callable
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel

from customer_directory.core.config import settings
from customer_directory.core.errors import ForbiddenError, UnauthorizedError


# Missing credentials are reported through our own structured 401
security = HTTPBasic(auto_error=False)

LIST_USERS = "list_users"

class Principal(BaseModel):
    """The authenticated caller and the capabilities it holds."""
    username: str
    capabilities: frozenset[str] = frozenset()

    def can(self, capability: str) -> bool:
        return capability in self.capabilities


def authenticate(
    credentials: Annotated[HTTPBasicCredentials | None, Depends(security)],
) -> Principal:
    """Implements Basic Authentication using environment-stored credentials.

    Args:
        credentials (HTTPBasicCredentials | None): The credentials provided via
            the Authorization header, if any.

    Returns:
        Principal: The authenticated caller with its configured capabilities.

    Raises:
        UnauthorizedError: 401 status code if credentials are missing or do
            not match the environment.
    """
    if credentials is None:
        raise UnauthorizedError()

    # Use secrets.compare_digest to prevent timing attacks
    is_user_ok = secrets.compare_digest(
        credentials.username.encode("utf-8"), settings.ADMIN_USERNAME.encode("utf-8")
    )
    is_pass_ok = secrets.compare_digest(
        credentials.password.encode("utf-8"), settings.ADMIN_PASSWORD.encode("utf-8")
    )

    if not (is_user_ok and is_pass_ok):
        raise UnauthorizedError("rest_invalid_credentials", "Incorrect username or password.")

    return Principal(
        username=credentials.username,
        capabilities=frozenset(settings.ADMIN_CAPABILITIES),
    )


def require_capability(capability: str) -> Callable[[Principal], Principal]:
    """Builds a permission dependency that demands ``capability``."""

    def check_capability(principal: Annotated[Principal, Depends(authenticate)]) -> Principal:
        if not principal.can(capability):
            raise ForbiddenError()
        return principal

    return check_capability
