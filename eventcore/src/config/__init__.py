"""
Configuration module for the eventcore backend.

Provides centralized configuration for:
- Auto-transition sweep scheduling
- Series validation policies
"""

from eventcore.src.config.settings import AppSettings, get_settings

__all__ = [
    "AppSettings",
    "get_settings",
]
