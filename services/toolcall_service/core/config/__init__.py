"""Configuration module for the tool-call service."""

from services.toolcall_service.core.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
