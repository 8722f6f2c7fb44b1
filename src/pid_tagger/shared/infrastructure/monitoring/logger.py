"""
Centralized logging configuration for PID Tagger.
"""

import logging
import sys
from pathlib import Path
from typing import Any, MutableMapping, Optional, Tuple
from functools import lru_cache

from ...config.settings import get_settings


@lru_cache()
def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    include_timestamp: bool = True
) -> None:
    """
    Setup centralized logging configuration.

    Args:
        log_level: Logging level
        log_file: Optional log file path
        include_timestamp: Whether to include timestamps
    """
    settings = get_settings()

    # Settings win over the parameter defaults
    level_str = settings.logging_config.get('level', log_level).upper()
    level = getattr(logging, level_str, logging.INFO)
    log_file = log_file or settings.logging_config.get('file')

    if include_timestamp:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    else:
        formatter = logging.Formatter(
            '%(name)s - %(levelname)s - %(message)s'
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # PyMuPDF and the spreadsheet writer are chatty at DEBUG
    logging.getLogger('fitz').setLevel(logging.WARNING)
    logging.getLogger('openpyxl').setLevel(logging.WARNING)


@lru_cache()
def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with consistent configuration.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    setup_logging()

    return logging.getLogger(name)


class PageLoggerAdapter(logging.LoggerAdapter):
    """Prefixes messages with the page being processed, e.g. ``[page 2/5]``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"[page {self.extra['page']}/{self.extra['total']}] {msg}", kwargs


def get_page_logger(name: str, page: int, total: int) -> PageLoggerAdapter:
    """
    Get a logger that tags every message with a page position.

    Args:
        name: Logger name (usually __name__)
        page: 1-based page number
        total: Number of pages in the document

    Returns:
        Adapter around the named logger
    """
    return PageLoggerAdapter(get_logger(name), {'page': page, 'total': total})
