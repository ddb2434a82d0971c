"""Authentication module for Raid Ledger"""

from .jwt_manager import JWTManager
from .rbac import AuthenticatedUser, get_current_user, require_admin

__all__ = ["JWTManager", "AuthenticatedUser", "get_current_user", "require_admin"]
