"""Configuration: environment-driven settings and the dependency container."""

from shared_queue.config.settings import Settings, clear_settings_cache, get_settings

__all__ = ["Settings", "get_settings", "clear_settings_cache"]
