"""
API package for the Raid Ledger backend.

This package contains FastAPI routers for the plugin admin endpoints.
"""

from .plugins_admin import router as plugins_admin_router

__all__ = ["plugins_admin_router"]
