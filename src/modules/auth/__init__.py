"""Auth module: bearer token verification and role checks."""

from src.modules.auth.auth import AuthenticatedUser, get_current_user
from src.modules.auth.dependencies import require_role

__all__ = [
    "AuthenticatedUser",
    "get_current_user",
    "require_role",
]
