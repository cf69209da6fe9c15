"""Configuration package for repo-forge."""

from repo_forge.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
