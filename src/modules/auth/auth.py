"""JWT authentication dependency for FastAPI.

Validates Bearer tokens from the Authorization header and exposes the
requester's id and workflow role. Tokens are issued elsewhere; this module
only verifies them.
"""

import logging
import uuid
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from src.config import settings
from src.exceptions import UnauthorizedException
from src.models.enums import Role
from src.modules.workflow import parse_role

logger = logging.getLogger(__name__)

# FastAPI security scheme: extracts Bearer token from Authorization header
_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthenticatedUser:
    """Represents the authenticated user extracted from a JWT token.

    ``role`` is ``None`` when the token carries no role claim or one outside
    the known set; such users cannot change order status.
    """

    id: uuid.UUID
    email: str | None
    role: Role | None


def _decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Raises UnauthorizedException on failure."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return payload
    except JWTError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise UnauthorizedException("Invalid or expired token") from exc


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> AuthenticatedUser:
    """FastAPI dependency that extracts and validates the current user from JWT."""
    if credentials is None:
        raise UnauthorizedException("Authentication required")

    payload = _decode_token(credentials.credentials)

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError, TypeError) as exc:
        raise UnauthorizedException("Token is missing required claims") from exc

    role = parse_role(payload.get("role"))
    if role is None:
        logger.warning("Token for user %s carries no usable role: %r", user_id, payload.get("role"))

    user = AuthenticatedUser(id=user_id, email=payload.get("email"), role=role)
    request.state.user = user
    return user
