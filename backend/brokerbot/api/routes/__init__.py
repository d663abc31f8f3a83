"""
API routes package
"""
from brokerbot.api.routes import admin, webhook

__all__ = [
    "admin",
    "webhook",
]
