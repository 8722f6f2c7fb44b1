"""
Configuration management for PID Tagger.
"""

from .settings import Settings, get_settings, load_extraction_settings

__all__ = ["Settings", "get_settings", "load_extraction_settings"]
