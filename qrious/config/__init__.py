"""Configuration package."""

from .settings import Environment, Settings, get_settings
from .logging import get_logger, setup_logging

__all__ = ["Environment", "Settings", "get_settings", "get_logger", "setup_logging"]
