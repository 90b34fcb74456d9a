"""Configuration module for the AI bookkeeper."""

from ai_bookkeeper.config.logging import configure_logging
from ai_bookkeeper.config.settings import FlatSettings, get_settings

__all__ = ["FlatSettings", "get_settings", "configure_logging"]
