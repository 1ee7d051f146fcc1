"""
Application settings package for the classification relay.

This package provides centralized, type-safe configuration management
using Pydantic settings.
"""

from app_settings.settings import ConfigError, Settings, get_settings, load_settings

__all__ = ["ConfigError", "Settings", "get_settings", "load_settings"]
