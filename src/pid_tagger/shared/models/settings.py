"""
Pattern and tolerance configuration models.

Patterns are a tagged variant: most categories use a single regular
expression, while instruments may be described as a function-letter part and
a loop-number part joined by a separator.
"""

from typing import Annotated, Any, Dict, Literal, Mapping, Union

from pydantic import Field, field_validator

from .base import BaseModel
from .tags import Category


INSTRUMENT_SEPARATOR = r"\s?"


class PlainPattern(BaseModel):
    """A single regular expression."""

    kind: Literal["plain"] = "plain"
    pattern: str = Field(default="", description="Regular expression; empty disables the category")

    @property
    def effective_pattern(self) -> str:
        return self.pattern


class FunctionNumberPattern(BaseModel):
    """Instrument pattern built from a function part and a number part."""

    kind: Literal["function_number"] = "function_number"
    func: str = Field(default="", description="Function letters pattern, e.g. [A-Z]{2,4}")
    num: str = Field(default="", description="Loop number pattern, e.g. \\d{3,4}")
    separator: str = Field(default=INSTRUMENT_SEPARATOR, description="Literal joined between func and num")

    @property
    def effective_pattern(self) -> str:
        if not self.func and not self.num:
            return ""
        return f"{self.func}{self.separator}{self.num}"


class InvalidPattern(BaseModel):
    """A stored pattern value that could not be understood; its category is skipped."""

    kind: Literal["invalid"] = "invalid"
    value: Any = None
    reason: str = ""

    @property
    def effective_pattern(self) -> str:
        return ""


PatternSpec = Annotated[
    Union[PlainPattern, FunctionNumberPattern, InvalidPattern], Field(discriminator="kind")
]


class ToleranceSetting(BaseModel):
    """Spatial thresholds for a category, in PDF units."""

    horizontal: float = Field(default=0.0, ge=0.0, description="Horizontal search distance")
    vertical: float = Field(default=0.0, ge=0.0, description="Vertical search distance")
    auto_link_distance: float = Field(
        default=0.0, ge=0.0, alias="autoLinkDistance", description="Max center distance for auto-linking"
    )


DEFAULT_PATTERNS: Dict[Category, Any] = {
    Category.EQUIPMENT: r'^([^-]*-){2}[^-]*$',
    Category.LINE: r'^(?=.{10,25}$)(?=.*")([^-]*-){3,}[^-]*$',
    Category.INSTRUMENT: {
        "func": r'[A-Z]{2,4}',
        "num": r'\d{3,4}(?:\s?[A-Z])?',
    },
    Category.DRAWING_NUMBER: r'[A-Z\d-]{5,}-[A-Z\d-]{5,}-\d{3,}',
    Category.NOTES_AND_HOLDS: r'^(NOTE|HOLD).*',
    Category.UNCATEGORIZED: '',
}

DEFAULT_TOLERANCES: Dict[Category, Dict[str, float]] = {
    Category.INSTRUMENT: {
        "horizontal": 10.0,
        "vertical": 10.0,
        "auto_link_distance": 30.0,
    },
}


def pattern_spec_from_raw(category: Category, value: Any) -> Union[PlainPattern, FunctionNumberPattern, InvalidPattern]:
    """
    Coerce a stored pattern value into a pattern spec.

    Accepts spec instances, plain strings, ``{"func", "num"}`` objects and
    dictionaries carrying a ``kind``. A legacy instrument pattern stored as a
    plain string is split at the first ``\\s?`` into function and number parts.
    """
    category = Category(category)
    spec = _coerce_pattern_spec(category, value)
    if isinstance(spec, FunctionNumberPattern) and category is not Category.INSTRUMENT:
        raise ValueError(f"Function/number patterns are only valid for Instrument, not {category.value}")
    return spec


def resolve_pattern_spec(category: Category, value: Any) -> Union[PlainPattern, FunctionNumberPattern, InvalidPattern]:
    """Like ``pattern_spec_from_raw``, but an unusable value becomes an ``InvalidPattern``."""
    try:
        return pattern_spec_from_raw(category, value)
    except ValueError as e:
        return InvalidPattern(value=value, reason=str(e))


def _coerce_pattern_spec(category: Category, value: Any) -> Union[PlainPattern, FunctionNumberPattern, InvalidPattern]:
    if isinstance(value, (PlainPattern, FunctionNumberPattern, InvalidPattern)):
        return value
    if value is None:
        return PlainPattern()
    if isinstance(value, str):
        if category is Category.INSTRUMENT:
            return _migrate_instrument_pattern(value)
        return PlainPattern(pattern=value)
    if isinstance(value, Mapping):
        kind = value.get("kind")
        if kind == "plain" or (kind is None and "pattern" in value):
            return PlainPattern(pattern=value.get("pattern") or "")
        if kind == "function_number" or (kind is None and ("func" in value or "num" in value)):
            return FunctionNumberPattern(
                func=value.get("func") or "",
                num=value.get("num") or "",
                separator=value.get("separator", INSTRUMENT_SEPARATOR),
            )
    raise ValueError(f"Unsupported pattern value for {category.value}: {value!r}")


def pattern_spec_to_raw(spec: Union[PlainPattern, FunctionNumberPattern, InvalidPattern]) -> Any:
    """Inverse of ``pattern_spec_from_raw`` using the project-file shapes."""
    if isinstance(spec, InvalidPattern):
        return spec.value
    if isinstance(spec, FunctionNumberPattern):
        raw = {"func": spec.func, "num": spec.num}
        if spec.separator != INSTRUMENT_SEPARATOR:
            raw["separator"] = spec.separator
        return raw
    return spec.pattern


def _migrate_instrument_pattern(pattern: str) -> FunctionNumberPattern:
    index = pattern.find(INSTRUMENT_SEPARATOR)
    if index > -1:
        return FunctionNumberPattern(
            func=pattern[:index],
            num=pattern[index + len(INSTRUMENT_SEPARATOR):],
        )
    return FunctionNumberPattern(func=pattern, num="")


def _default_patterns() -> Dict[Category, Union[PlainPattern, FunctionNumberPattern, InvalidPattern]]:
    return {category: pattern_spec_from_raw(category, value) for category, value in DEFAULT_PATTERNS.items()}


def _default_tolerances() -> Dict[Category, ToleranceSetting]:
    return {category: ToleranceSetting(**values) for category, values in DEFAULT_TOLERANCES.items()}


class ExtractionSettings(BaseModel):
    """
    Fully resolved pattern/tolerance configuration for one extraction run.

    Constructing with explicit ``patterns`` uses exactly those categories;
    ``from_document`` additionally fills missing categories from defaults.
    """

    patterns: Dict[Category, PatternSpec] = Field(default_factory=_default_patterns)
    tolerances: Dict[Category, ToleranceSetting] = Field(default_factory=_default_tolerances)

    @field_validator('patterns', mode='before')
    @classmethod
    def coerce_patterns(cls, v):
        if not isinstance(v, Mapping):
            return v
        return {Category(category): resolve_pattern_spec(category, value) for category, value in v.items()}

    def pattern_for(self, category: Category) -> str:
        """Effective regular expression for a category ('' when disabled)."""
        spec = self.patterns.get(Category(category))
        return spec.effective_pattern if spec is not None else ""

    def tolerance_for(self, category: Category) -> ToleranceSetting:
        """Configured tolerance, falling back to defaults and then to zero."""
        category = Category(category)
        if category in self.tolerances:
            return self.tolerances[category]
        if category in DEFAULT_TOLERANCES:
            return ToleranceSetting(**DEFAULT_TOLERANCES[category])
        return ToleranceSetting()

    @property
    def auto_link_distance(self) -> float:
        return self.tolerance_for(Category.INSTRUMENT).auto_link_distance

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "ExtractionSettings":
        """
        Build settings from the project-file shape, filling in defaults.

        Categories this version does not know about are ignored.
        """
        known = {category.value for category in Category}

        patterns = dict(DEFAULT_PATTERNS)
        for category, value in (data.get("patterns") or {}).items():
            if getattr(category, "value", category) in known:
                patterns[Category(category)] = value

        tolerances = _default_tolerances()
        for category, value in (data.get("tolerances") or {}).items():
            if getattr(category, "value", category) not in known:
                continue
            category = Category(category)
            merged = tolerances[category].model_dump() if category in tolerances else {}
            merged.update(ToleranceSetting.model_validate(value).model_dump(exclude_unset=True))
            tolerances[category] = ToleranceSetting(**merged)

        return cls(patterns=patterns, tolerances=tolerances)

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the ``settings`` block of a project file."""
        return {
            "patterns": {
                category.value: pattern_spec_to_raw(spec) for category, spec in self.patterns.items()
            },
            "tolerances": {
                category.value: tolerance.model_dump(by_alias=True) for category, tolerance in self.tolerances.items()
            },
        }
