"""Configuration management for the note discovery service."""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
