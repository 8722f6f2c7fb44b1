"""
Monitoring infrastructure for PID Tagger.
"""

from .logger import PageLoggerAdapter, get_logger, get_page_logger, setup_logging

__all__ = [
    "PageLoggerAdapter",
    "get_logger",
    "get_page_logger",
    "setup_logging",
]
