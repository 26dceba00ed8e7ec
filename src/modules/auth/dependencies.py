"""FastAPI dependency functions for role-based access."""

from fastapi import Depends

from src.exceptions import ForbiddenException
from src.models.enums import Role
from src.modules.auth.auth import AuthenticatedUser, get_current_user


def require_role(*roles: Role):
    """Factory that returns a FastAPI dependency admitting only *roles*."""

    async def _check(
        user: AuthenticatedUser = Depends(get_current_user),
    ) -> AuthenticatedUser:
        if user.role not in roles:
            raise ForbiddenException("Insufficient permissions")
        return user

    return _check
