"""
Shared components for PID Tagger.

Contains common models, configuration, exceptions and infrastructure used by
the extraction, tag-graph and export services.
"""

from .models import *
from .config import *
from .exceptions import *
from .infrastructure import *

__all__ = [
    # From models
    "BaseModel", "new_id",
    "Category", "RelationshipKind", "BoundingBox", "RawTextItem", "Tag", "Relationship",
    "BASE_CATEGORIES", "ITEM_CATEGORIES",
    "PlainPattern", "FunctionNumberPattern", "InvalidPattern", "PatternSpec", "ToleranceSetting", "ExtractionSettings",
    "DEFAULT_PATTERNS", "DEFAULT_TOLERANCES", "pattern_spec_from_raw", "pattern_spec_to_raw", "resolve_pattern_spec",

    # From config
    "Settings", "get_settings", "load_extraction_settings",

    # From exceptions
    "PidTaggerError", "ConfigurationError", "ValidationError", "ExternalIOError",
    "ConsistencyError", "ProcessingError", "StorageError",

    # From infrastructure
    "get_logger", "setup_logging",
]
