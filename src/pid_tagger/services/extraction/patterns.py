"""
Category pattern matching for text runs.
"""

import re
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from ...shared.exceptions import ConfigurationError
from ...shared.infrastructure.monitoring.logger import get_logger
from ...shared.models.settings import InvalidPattern, pattern_spec_from_raw
from ...shared.models.tags import Category


logger = get_logger(__name__)


def compile_category_pattern(category: Category, spec: Any) -> Optional["re.Pattern"]:
    """
    Compile the effective pattern of a category.

    Returns None when the category has no pattern configured.

    Raises:
        ConfigurationError: the pattern value is unusable or not a valid regular expression
    """
    category = Category(category)
    try:
        resolved = pattern_spec_from_raw(category, spec)
    except ValueError as e:
        raise ConfigurationError(str(e), category=category.value) from e
    if isinstance(resolved, InvalidPattern):
        raise ConfigurationError(resolved.reason, category=category.value)
    pattern = resolved.effective_pattern
    if not pattern:
        return None
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise ConfigurationError(
            f"Invalid regex for category {category.value}: {pattern} ({e})",
            category=category.value
        ) from e


class PatternMatcher:
    """
    Finds tag candidates in text runs using per-category regular expressions.

    Patterns are compiled once. A category whose pattern does not compile is
    skipped; the problem is logged and kept in ``errors`` for the caller.
    """

    def __init__(self, category_patterns: Mapping[Category, Any],
                 categories: Optional[Iterable[Category]] = None):
        """
        Args:
            category_patterns: Mapping of category to pattern spec or raw pattern
            categories: Categories to match, in order (defaults to the mapping order)
        """
        self.errors: List[ConfigurationError] = []
        self._compiled: List[Tuple[Category, "re.Pattern"]] = []

        patterns = {Category(category): spec for category, spec in category_patterns.items()}
        order = [Category(c) for c in categories] if categories is not None else list(patterns)

        for category in order:
            if category not in patterns:
                continue
            try:
                regex = compile_category_pattern(category, patterns[category])
            except ConfigurationError as e:
                logger.warning(f"Skipping category {category.value}: {e}")
                self.errors.append(e)
                continue
            if regex is not None:
                self._compiled.append((category, regex))

    @property
    def categories(self) -> List[Category]:
        """Categories with a usable pattern, in match order."""
        return [category for category, _ in self._compiled]

    def match(self, text: str) -> List[Tuple[Category, str]]:
        """
        All non-overlapping matches of every category, left to right.

        Empty matches are dropped. Categories are not mutually exclusive, so
        one run may yield matches for several categories.
        """
        results: List[Tuple[Category, str]] = []
        for category, regex in self._compiled:
            for match in regex.finditer(text):
                if match.group(0):
                    results.append((category, match.group(0)))
        return results


def match_category(text: str, category_patterns: Mapping[Category, Any]) -> List[Tuple[Category, str]]:
    """
    Match a single text run against every category pattern.

    Args:
        text: Text run content
        category_patterns: Mapping of category to pattern spec or raw pattern

    Returns:
        List of (category, matched substring) pairs
    """
    return PatternMatcher(category_patterns).match(text)
