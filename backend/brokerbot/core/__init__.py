"""
Core module exports
"""
from brokerbot.core.config import settings, get_settings, Settings
from brokerbot.core.security import is_admin_phone, require_admin_token
from brokerbot.core.logging import logger, log_audit_event

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "is_admin_phone",
    "require_admin_token",
    "logger",
    "log_audit_event",
]
