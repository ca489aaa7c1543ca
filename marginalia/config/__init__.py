"""Configuration package."""

from marginalia.config.settings import Settings, get_settings


__all__ = ["Settings", "get_settings"]
