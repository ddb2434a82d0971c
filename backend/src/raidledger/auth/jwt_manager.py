"""JWT token management for Raid Ledger authentication"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from ..core.config import get_settings_instance

logger = logging.getLogger(__name__)


class JWTManager:
    """Issues and verifies the access tokens presented to the admin API"""

    def __init__(self):
        settings = get_settings_instance()
        self.secret_key = settings.jwt_secret_key
        self.algorithm = "HS256"
        self.access_token_expire_minutes = settings.jwt_access_token_expire_minutes

        if not self.secret_key:
            raise ValueError("JWT_SECRET_KEY not configured in settings")

    def create_access_token(self, user_data: Dict[str, Any]) -> str:
        """Create JWT access token with user information"""
        now = datetime.now(timezone.utc)
        payload = {
            "user_id": user_data["user_id"],
            "email": user_data.get("email"),
            "role": user_data["role"],
            "exp": now + timedelta(minutes=self.access_token_expire_minutes),
            "iat": now,
            "type": "access",
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Verify and decode JWT token"""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning(f"JWT verification failed: {e}")
            return None

    def extract_user_from_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Extract user information from access token"""
        payload = self.verify_token(token)
        if not payload or payload.get("type") != "access" or not payload.get("user_id"):
            return None

        return {
            "user_id": payload.get("user_id"),
            "email": payload.get("email"),
            "role": payload.get("role"),
        }
