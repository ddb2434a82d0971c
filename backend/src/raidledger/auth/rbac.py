"""Admin access control for the plugin management API.

Users live in the authentication subsystem; this module only trusts what a
verified access token (or the global API key) says about the caller.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request, status

from ..core.config import get_settings_instance
from .jwt_manager import JWTManager

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: str
    role: str
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


async def get_current_user(request: Request) -> AuthenticatedUser:
    """Get current authenticated user - supports JWT or global API key."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer, ApiKey"},
        )

    # Global API key (Authorization: ApiKey <key>) acts as an admin
    if auth_header.startswith("ApiKey "):
        settings = get_settings_instance()
        provided_key = auth_header.split(" ", 1)[1]
        if not settings.api_key or provided_key != settings.api_key:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid API key",
                headers={"WWW-Authenticate": "ApiKey"},
            )
        return AuthenticatedUser(user_id="api-key", role=ADMIN_ROLE)

    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        user_data = JWTManager().extract_user_from_token(token)
        if not user_data:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return AuthenticatedUser(
            user_id=str(user_data["user_id"]),
            role=str(user_data.get("role") or ""),
            email=user_data.get("email"),
        )

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unsupported Authorization scheme",
    )


async def require_admin(request: Request) -> AuthenticatedUser:
    """Require admin role for endpoint access"""
    current_user = await get_current_user(request)
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user
