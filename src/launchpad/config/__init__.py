"""Configuration module for Launchpad.

Usage:
    from launchpad.config import get_settings

    settings = get_settings()  # Cached singleton
    print(settings.pumpportal_ws_url)

Note:
    No module-level `settings` instance is exported because building one
    fails on import when required env vars are missing.
"""

from launchpad.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
