"""
Service models for tag extraction.
"""

from typing import List, Optional

from pydantic import Field, field_validator

from ...shared.models.base import BaseModel
from ...shared.models.tags import Tag, RawTextItem


class TextRun(BaseModel):
    """
    A text run as delivered by a PDF text layer.

    ``transform`` is the 2x3 affine matrix ``[a, b, c, d, e, f]``; the run is
    anchored at ``(e, f)`` and rotated by ``atan2(b, a)``.
    """

    text: str = Field(..., alias="str", description="Run content")
    transform: List[float] = Field(..., description="Affine matrix [a, b, c, d, e, f]")
    width: float = Field(..., description="Run advance width")
    height: float = Field(..., description="Run height (font size)")

    @field_validator('transform')
    @classmethod
    def validate_transform(cls, v):
        if len(v) != 6:
            raise ValueError("Transform must have 6 components [a, b, c, d, e, f]")
        return v


class TextPage(BaseModel):
    """The ordered text runs of one page."""

    page_number: int = Field(..., ge=1, description="1-based page number")
    runs: List[TextRun] = Field(default_factory=list, description="Text runs in content-stream order")
    width: Optional[float] = Field(default=None, description="Page width, when known")
    height: Optional[float] = Field(default=None, description="Page height, when known")


class ExtractionProgress(BaseModel):
    """Progress observation emitted after each page."""

    current: int = Field(..., description="Pages processed so far")
    total: int = Field(..., description="Total pages in the document")


class PageExtraction(BaseModel):
    """Tags and leftover raw text produced for one page."""

    page: int = Field(..., ge=1)
    tags: List[Tag] = Field(default_factory=list)
    raw_text_items: List[RawTextItem] = Field(default_factory=list, alias="rawTextItems")
    warnings: List[str] = Field(default_factory=list, description="Configuration problems met on this page")
    progress: Optional[ExtractionProgress] = Field(default=None)


class DocumentExtraction(BaseModel):
    """Aggregate of every page of a document."""

    page_count: int = Field(default=0)
    tags: List[Tag] = Field(default_factory=list)
    raw_text_items: List[RawTextItem] = Field(default_factory=list, alias="rawTextItems")
    warnings: List[str] = Field(default_factory=list)

    @property
    def tag_count(self) -> int:
        return len(self.tags)

    def get_summary(self) -> dict:
        """Counts per category, for logging and CLI output."""
        by_category = {}
        for tag in self.tags:
            by_category[tag.category.value] = by_category.get(tag.category.value, 0) + 1
        return {
            'page_count': self.page_count,
            'tag_count': len(self.tags),
            'raw_text_count': len(self.raw_text_items),
            'tags_by_category': by_category,
            'warning_count': len(self.warnings),
        }
