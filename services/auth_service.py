"""
Access tokens

Sessions are owned by the auth backend; this service only reads the bearer
token it hands out (HS256 JWT, `sub` = user id, `email` claim).
"""

import logging
from typing import Any, Dict, Optional

import jwt

from config import get_settings

logger = logging.getLogger(__name__)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a valid token, None if invalid or expired"""
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"verify_aud": False},
        )
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected access token: {e}")
        return None
