"""Layered configuration for onboard."""

from onboard.settings.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
