"""Onboard: browser-driven runner for a multi-screen profile-creation wizard."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("onboard")
except Exception:
    __version__ = "0.0.0"
