"""
Configuration management for the hospital chat backend.
"""

from .settings import Settings, get_settings
from .database import DatabaseConfig
from .external_apis import WhatsAppConfig

__all__ = [
    "Settings",
    "get_settings",
    "DatabaseConfig",
    "WhatsAppConfig",
]
