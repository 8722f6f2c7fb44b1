"""
Fragment merger: turns the text runs of one page into tags and raw text.

Pass 1 pairs stacked instrument fragments ("PT" above "1001"), pass 2
classifies the remaining runs with the configured category patterns, pass 3
picks the page's drawing number and whatever is left becomes raw text.
"""

import re
from typing import Any, List, Mapping, Optional, Set

from pydantic import ValidationError as PydanticValidationError

from ...shared.exceptions import ConfigurationError, ProcessingError
from ...shared.infrastructure.monitoring.logger import get_logger
from ...shared.models.settings import ExtractionSettings
from ...shared.models.tags import BoundingBox, Category, RawTextItem, Tag
from .geometry import compute_bounding_box
from .models import PageExtraction, TextPage, TextRun
from .patterns import PatternMatcher, compile_category_pattern


logger = get_logger(__name__)

INSTRUMENT_FUNCTION_REGEX = re.compile(r'[A-Z]{2,3}')
INSTRUMENT_NUMBER_REGEX = re.compile(r'\d{3,}')

# Stacked fragments: centers closer than this horizontally, gap strictly between 0 and this
INSTRUMENT_MAX_CENTER_OFFSET = 10.0
INSTRUMENT_MAX_GAP = 10.0

CLASSIFICATION_CATEGORIES = (
    Category.EQUIPMENT,
    Category.LINE,
    Category.INSTRUMENT,
    Category.NOTES_AND_HOLDS,
)


class FragmentMerger:
    """Extracts tags from a single page with one resolved configuration."""

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        self.settings = settings or ExtractionSettings()

    def extract_page(self, page: TextPage) -> PageExtraction:
        """
        Run all passes over one page.

        Args:
            page: The page's text runs

        Returns:
            Tags and raw text items of the page, plus configuration warnings

        Raises:
            ProcessingError: ``page`` is missing or not a text page
        """
        if page is None or not isinstance(page, TextPage):
            raise ProcessingError(f"Expected a TextPage, got {type(page).__name__}")

        page_number = page.page_number
        runs = [run for run in page.runs if run.text.strip()]
        boxes = [compute_bounding_box(run.transform, run.width, run.height) for run in runs]
        consumed: Set[int] = set()
        warnings: List[str] = []

        tags = self._pair_instruments(runs, boxes, page_number, consumed)
        paired = len(tags)

        matcher = PatternMatcher(self.settings.patterns, categories=CLASSIFICATION_CATEGORIES)
        warnings.extend(str(error) for error in matcher.errors)
        tags.extend(self._classify_runs(runs, boxes, page_number, consumed, matcher, tags))

        try:
            drawing_number = self._find_drawing_number(runs, boxes, page, consumed)
        except ConfigurationError as e:
            logger.warning(f"Skipping drawing number on page {page_number}: {e}")
            warnings.append(str(e))
            drawing_number = None
        if drawing_number is not None:
            tags.append(drawing_number)

        raw_text_items = [
            RawTextItem(text=run.text, page=page_number, bbox=boxes[index])
            for index, run in enumerate(runs)
            if index not in consumed
        ]

        logger.debug(
            f"Page {page_number}: {len(runs)} runs, {paired} paired instruments, "
            f"{len(tags)} tags, {len(raw_text_items)} raw items"
        )
        return PageExtraction(page=page_number, tags=tags, raw_text_items=raw_text_items, warnings=warnings)

    def _pair_instruments(self, runs: List[TextRun], boxes: List[BoundingBox],
                          page_number: int, consumed: Set[int]) -> List[Tag]:
        """
        Pass 1: greedy first-match pairing of function letters over loop numbers.

        Candidates are visited in run order and each takes the first
        qualifying partner in run order. The result is order dependent.
        """
        tags: List[Tag] = []

        for i, function_run in enumerate(runs):
            if i in consumed or not INSTRUMENT_FUNCTION_REGEX.fullmatch(function_run.text):
                continue

            for j, number_run in enumerate(runs):
                if i == j or j in consumed or not INSTRUMENT_NUMBER_REGEX.fullmatch(number_run.text):
                    continue
                if not _is_stacked(boxes[i], boxes[j]):
                    continue

                tags.append(Tag(
                    text=f"{function_run.text}-{number_run.text}",
                    page=page_number,
                    bbox=boxes[i].union(boxes[j]),
                    category=Category.INSTRUMENT,
                    source_items=[
                        RawTextItem(text=function_run.text, page=page_number, bbox=boxes[i]),
                        RawTextItem(text=number_run.text, page=page_number, bbox=boxes[j]),
                    ],
                ))
                consumed.update((i, j))
                break

        return tags

    def _classify_runs(self, runs: List[TextRun], boxes: List[BoundingBox], page_number: int,
                       consumed: Set[int], matcher: PatternMatcher, existing: List[Tag]) -> List[Tag]:
        """Pass 2: classify every unconsumed run with the category patterns."""
        seen_texts = {tag.text for tag in existing if tag.page == page_number}
        tags: List[Tag] = []

        for index, run in enumerate(runs):
            if index in consumed:
                continue
            matches = matcher.match(run.text)
            if not matches:
                continue

            consumed.add(index)
            for category, text in matches:
                if text in seen_texts:
                    continue
                seen_texts.add(text)
                tags.append(Tag(text=text, page=page_number, bbox=boxes[index], category=category))

        return tags

    def _find_drawing_number(self, runs: List[TextRun], boxes: List[BoundingBox],
                             page: TextPage, consumed: Set[int]) -> Optional[Tag]:
        """
        Pass 3: the drawing-number match closest to the page's bottom-right corner.

        Needs the page width; returns None when it is unknown or nothing matches.
        """
        spec = self.settings.patterns.get(Category.DRAWING_NUMBER)
        if spec is None or page.width is None:
            return None
        regex = compile_category_pattern(Category.DRAWING_NUMBER, spec)
        if regex is None:
            return None

        best_index = None
        best_text = None
        min_distance_sq = float("inf")
        for index, run in enumerate(runs):
            if index in consumed:
                continue
            match = regex.search(run.text)
            if not match or not match.group(0):
                continue
            dx = page.width - boxes[index].x2
            dy = boxes[index].y1
            distance_sq = dx * dx + dy * dy
            if distance_sq < min_distance_sq:
                min_distance_sq = distance_sq
                best_index = index
                best_text = match.group(0)

        if best_index is None:
            return None
        consumed.add(best_index)
        return Tag(
            text=best_text,
            page=page.page_number,
            bbox=boxes[best_index],
            category=Category.DRAWING_NUMBER,
        )


def _is_stacked(upper: BoundingBox, lower: BoundingBox) -> bool:
    """True when ``upper`` sits just above ``lower`` with aligned centers."""
    horizontally_aligned = abs(upper.center[0] - lower.center[0]) < INSTRUMENT_MAX_CENTER_OFFSET
    gap = upper.y1 - lower.y2
    return horizontally_aligned and 0 < gap < INSTRUMENT_MAX_GAP


def extract_page_tags(page: TextPage, patterns: Mapping[Category, Any],
                      tolerances: Optional[Mapping[Category, Any]] = None) -> PageExtraction:
    """
    Extract the tags of one page.

    Args:
        page: The page's text runs
        patterns: Category to pattern spec (or raw pattern) mapping
        tolerances: Optional category to tolerance mapping, carried on the settings

    Returns:
        Page tags, raw text items and warnings. An unusable pattern only skips
        its own category and is listed in the warnings.

    Raises:
        ConfigurationError: ``tolerances`` is malformed
    """
    try:
        settings = ExtractionSettings(patterns=patterns, tolerances=tolerances or {})
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid extraction settings: {e}") from e
    return FragmentMerger(settings).extract_page(page)
