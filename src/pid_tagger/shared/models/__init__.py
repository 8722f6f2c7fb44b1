"""
Shared data models for PID Tagger.
"""

from .base import BaseModel, new_id
from .tags import (
    Category, RelationshipKind, BoundingBox, RawTextItem, Tag, Relationship,
    BASE_CATEGORIES, ITEM_CATEGORIES,
)
from .settings import (
    PlainPattern, FunctionNumberPattern, InvalidPattern, PatternSpec, ToleranceSetting, ExtractionSettings,
    DEFAULT_PATTERNS, DEFAULT_TOLERANCES, pattern_spec_from_raw, pattern_spec_to_raw, resolve_pattern_spec,
)

__all__ = [
    # Base models
    "BaseModel",
    "new_id",
    # Tag graph models
    "Category",
    "RelationshipKind",
    "BoundingBox",
    "RawTextItem",
    "Tag",
    "Relationship",
    "BASE_CATEGORIES",
    "ITEM_CATEGORIES",
    # Configuration models
    "PlainPattern",
    "FunctionNumberPattern",
    "InvalidPattern",
    "PatternSpec",
    "ToleranceSetting",
    "ExtractionSettings",
    "DEFAULT_PATTERNS",
    "DEFAULT_TOLERANCES",
    "pattern_spec_from_raw",
    "pattern_spec_to_raw",
    "resolve_pattern_spec",
]
