# tarot_app/core/security.py
import logging
from typing import Optional

from fastapi import Request
from jose import JWTError, jwt

logger = logging.getLogger(__name__)


def decode_user_id(token: str, secret_key: str, algorithm: str = "HS256") -> Optional[str]:
    """Subject of a valid access token, or None."""
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError as e:
        logger.debug(f"Access token error: {e}")
        return None
    if payload.get("type", "access") != "access":
        return None
    return payload.get("sub")


async def get_current_user_id_from_cookie(request: Request) -> Optional[str]:
    """
    Identify the user from the `access_token` cookie when auth is configured.

    Anonymous use is allowed, so a missing or invalid token yields None
    instead of a 401.
    """
    settings = request.app.state.settings
    access_token = request.cookies.get("access_token")
    if not access_token or not settings.SECRET_KEY:
        return None
    return decode_user_id(access_token, settings.SECRET_KEY, settings.ALGORITHM)
