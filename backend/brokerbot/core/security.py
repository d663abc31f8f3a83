"""
Security utilities - admin token guard and admin allow-list
"""
import hmac
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from brokerbot.core.config import Settings, get_settings


def is_admin_phone(phone: str, app_settings: Optional[Settings] = None) -> bool:
    """
    Returns True if the identity is in the admin allow-list.

    Match is exact, no normalization is applied to the phone.
    """
    app_settings = app_settings or get_settings()
    return phone in app_settings.admin_phones


async def require_admin_token(
    x_admin_token: Optional[str] = Header(default=None),
    app_settings: Settings = Depends(get_settings),
) -> str:
    """Require the shared admin token on admin HTTP routes."""
    if not app_settings.ADMIN_API_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API is disabled (ADMIN_API_TOKEN not configured)",
        )

    if not x_admin_token or not hmac.compare_digest(x_admin_token, app_settings.ADMIN_API_TOKEN):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin token",
        )
    return x_admin_token
