"""
Package: config
Description: Environment-driven settings for the harness.
"""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
