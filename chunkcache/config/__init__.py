"""Configuration module for chunkcache."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
