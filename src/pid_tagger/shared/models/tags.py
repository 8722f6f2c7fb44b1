"""
Tag graph data models for PID Tagger.

These models represent the entities of a curated P&ID tag graph:
- RawTextItem: an unclassified text fragment left over after extraction
- Tag: a classified equipment/line/instrument/drawing-number/note entity
- Relationship: a typed directed edge between two entities
"""

from enum import Enum
from typing import Iterable, List, Tuple

from pydantic import Field, model_validator

from .base import BaseModel, new_id


class Category(str, Enum):
    """Tag categories. Determines matching pattern, tolerances and export sheet."""

    EQUIPMENT = "Equipment"
    LINE = "Line"
    INSTRUMENT = "Instrument"
    DRAWING_NUMBER = "DrawingNumber"
    NOTES_AND_HOLDS = "NotesAndHolds"
    UNCATEGORIZED = "Uncategorized"


class RelationshipKind(str, Enum):
    """Relationship types between graph entities."""

    CONNECTION = "Connection"      # Tag -> Tag
    INSTALLATION = "Installation"  # Instrument -> Equipment/Line
    ANNOTATION = "Annotation"      # Tag -> RawTextItem
    NOTE = "Note"                  # Tag -> NotesAndHolds tag


BASE_CATEGORIES = (Category.EQUIPMENT, Category.LINE)
ITEM_CATEGORIES = (Category.EQUIPMENT, Category.LINE, Category.INSTRUMENT)


class BoundingBox(BaseModel):
    """
    Axis-aligned box in PDF user-space coordinates (y grows upward).
    """

    x1: float = Field(..., description="Left edge")
    y1: float = Field(..., description="Bottom edge")
    x2: float = Field(..., description="Right edge")
    y2: float = Field(..., description="Top edge")

    @model_validator(mode='after')
    def validate_order(self):
        """Reject inverted boxes."""
        if self.x1 > self.x2 or self.y1 > self.y2:
            raise ValueError(
                f"Invalid bounding box ({self.x1}, {self.y1}, {self.x2}, {self.y2}): "
                "expected x1 <= x2 and y1 <= y2"
            )
        return self

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def center(self) -> Tuple[float, float]:
        """Calculate box center point."""
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    def union(self, other: "BoundingBox") -> "BoundingBox":
        """Smallest box enclosing both boxes."""
        return BoundingBox(
            x1=min(self.x1, other.x1),
            y1=min(self.y1, other.y1),
            x2=max(self.x2, other.x2),
            y2=max(self.y2, other.y2),
        )

    @classmethod
    def union_all(cls, boxes: Iterable["BoundingBox"]) -> "BoundingBox":
        """Smallest box enclosing every box in ``boxes`` (which must not be empty)."""
        boxes = list(boxes)
        if not boxes:
            raise ValueError("Cannot compute the union of zero bounding boxes")
        result = boxes[0]
        for box in boxes[1:]:
            result = result.union(box)
        return result


class RawTextItem(BaseModel):
    """A single unconsumed text run extracted from a page."""

    id: str = Field(default_factory=new_id, description="Unique identifier")
    text: str = Field(..., description="Text content")
    page: int = Field(..., ge=1, description="1-based page number")
    bbox: BoundingBox = Field(..., description="Bounding box on the page")


class Tag(BaseModel):
    """
    A classified entity on a diagram page.

    ``source_items`` holds the raw fragments the tag was built from, so that
    deleting the tag can restore them. An empty list means the tag was drawn
    manually or detected from a single run.
    """

    id: str = Field(default_factory=new_id, description="Unique identifier")
    text: str = Field(..., description="Tag text")
    page: int = Field(..., ge=1, description="1-based page number")
    bbox: BoundingBox = Field(..., description="Bounding box on the page")
    category: Category = Field(..., description="Tag category")
    source_items: List[RawTextItem] = Field(
        default_factory=list, alias="sourceItems", description="Originating raw fragments"
    )

    @model_validator(mode='after')
    def validate_source_pages(self):
        """Source fragments must come from the tag's own page."""
        for item in self.source_items:
            if item.page != self.page:
                raise ValueError(
                    f"Source item {item.id} is on page {item.page}, tag {self.id} is on page {self.page}"
                )
        return self

    @property
    def is_manual(self) -> bool:
        """True when the tag has no originating text runs."""
        return not self.source_items


class Relationship(BaseModel):
    """
    A typed directed edge between two entities.

    Serialized with the ``from``/``to`` keys used by saved project files.
    """

    id: str = Field(default_factory=new_id, description="Unique identifier")
    source_id: str = Field(..., alias="from", description="ID of the source entity")
    target_id: str = Field(..., alias="to", description="ID of the target entity")
    type: RelationshipKind = Field(..., description="Relationship kind")

    @property
    def key(self) -> Tuple[str, str, RelationshipKind]:
        """The (from, to, type) triple used for duplicate detection."""
        return (self.source_id, self.target_id, self.type)
