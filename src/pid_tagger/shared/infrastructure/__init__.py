"""
Shared infrastructure components for PID Tagger.

The PDF text-layer adapter lives in ``infrastructure.pdf`` and is imported
explicitly by callers that need it, so the core stays importable without a
PDF backend.
"""

from .monitoring.logger import get_logger, setup_logging

__all__ = [
    # Monitoring
    "get_logger",
    "setup_logging",
]
