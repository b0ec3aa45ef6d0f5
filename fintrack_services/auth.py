"""
Token authentication seam.

Token issuance and signature checks belong to an external collaborator.
The core only needs a TokenVerifier that maps a token to a user id;
authenticate() turns a missing or rejected token into
UnauthenticatedError so every entry point fails the same way.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from uuid import UUID

from fintrack_kernel.exceptions import UnauthenticatedError
from fintrack_kernel.logging_config import get_logger

logger = get_logger("services.auth")

_BEARER_PREFIX = "bearer "


@runtime_checkable
class TokenVerifier(Protocol):
    """Verifies an access token; returns the user id or None."""

    def verify(self, token: str) -> UUID | str | None: ...


def token_from_header(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` value."""
    if not authorization:
        return ""
    value = authorization.strip()
    if value.lower().startswith(_BEARER_PREFIX):
        return value[len(_BEARER_PREFIX):].strip()
    return value


def authenticate(verifier: TokenVerifier, token: str | None) -> UUID:
    """
    Resolve the acting user id for token.

    Raises:
        UnauthenticatedError: If the token is missing, rejected by the
            verifier, or maps to something that is not a user id.
    """
    if not token or not token.strip():
        raise UnauthenticatedError("Missing token")

    user_id = verifier.verify(token.strip())
    if user_id is None:
        logger.warning("token_rejected")
        raise UnauthenticatedError("Invalid token")
    if isinstance(user_id, UUID):
        return user_id
    try:
        return UUID(str(user_id))
    except ValueError:
        logger.warning("token_subject_malformed")
        raise UnauthenticatedError("Token subject is not a user id") from None
