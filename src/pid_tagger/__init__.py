"""
PID Tagger - tag extraction and tag-graph curation for P&ID drawings.
"""

__version__ = "1.0.0"
__author__ = "PID Tagger Team"

# Re-export main components for easy access
from .shared.config.settings import get_settings
from .shared.models.tags import Category, RelationshipKind, Tag, RawTextItem, Relationship
from .shared.models.settings import ExtractionSettings
from .shared.exceptions import PidTaggerError, ConfigurationError, ValidationError

__all__ = [
    "get_settings",
    "Category",
    "RelationshipKind",
    "Tag",
    "RawTextItem",
    "Relationship",
    "ExtractionSettings",
    "PidTaggerError",
    "ConfigurationError",
    "ValidationError",
]
