"""
Configuration module for Weather Proxy.
"""

from config.settings import Settings, get_settings, reload_settings

__all__ = ["Settings", "get_settings", "reload_settings"]
