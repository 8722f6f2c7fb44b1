"""
PDF text-layer adapters.
"""

from .pymupdf_provider import PyMuPDFTextProvider

__all__ = [
    "PyMuPDFTextProvider",
]
