"""
Tag Extraction Service for PID Tagger.

Turns the text layer of a P&ID PDF into classified tags and leftover raw
text, page by page.
"""

from .geometry import compute_bounding_box
from .patterns import PatternMatcher, match_category, compile_category_pattern
from .merger import FragmentMerger, extract_page_tags
from .pipeline import ExtractionPipeline, TextLayerProvider, process_document
from .models import TextRun, TextPage, PageExtraction, DocumentExtraction, ExtractionProgress

__all__ = [
    "compute_bounding_box",
    "PatternMatcher",
    "match_category",
    "compile_category_pattern",
    "FragmentMerger",
    "extract_page_tags",
    "ExtractionPipeline",
    "TextLayerProvider",
    "process_document",
    "TextRun",
    "TextPage",
    "PageExtraction",
    "DocumentExtraction",
    "ExtractionProgress",
]
