"""
Project files: the tag graph plus the pattern/tolerance configuration as JSON.
"""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from ...shared.exceptions import ConfigurationError, StorageError, ValidationError
from ...shared.infrastructure.monitoring.logger import get_logger
from ...shared.models.base import BaseModel
from ...shared.models.settings import ExtractionSettings
from ...shared.models.tags import RawTextItem, Relationship, Tag
from .graph import TagGraph


logger = get_logger(__name__)

PROJECT_SUFFIX = "-project.json"


class ProjectDocument(BaseModel):
    """Serialized project: the three entity pools, settings and metadata."""

    pdf_file_name: Optional[str] = Field(default=None, alias="pdfFileName")
    export_date: Optional[datetime] = Field(default=None, alias="exportDate")
    tags: List[Tag]
    relationships: List[Relationship]
    raw_text_items: List[RawTextItem] = Field(..., alias="rawTextItems")
    settings: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_graph(cls, graph: TagGraph, settings: Optional[ExtractionSettings] = None,
                   pdf_file_name: Optional[str] = None) -> "ProjectDocument":
        with graph._lock:
            return cls(
                pdf_file_name=pdf_file_name,
                export_date=datetime.now(),
                tags=[tag.model_copy(deep=True) for tag in graph.tags],
                relationships=[rel.model_copy() for rel in graph.relationships],
                raw_text_items=[item.model_copy(deep=True) for item in graph.raw_text_items],
                settings=(settings or ExtractionSettings()).to_document(),
            )

    def to_graph(self) -> TagGraph:
        """Build a tag graph, rejecting dangling relationships."""
        graph = TagGraph()
        graph.load_document(self.model_dump(mode="json", by_alias=True))
        return graph

    def extraction_settings(self) -> ExtractionSettings:
        try:
            return ExtractionSettings.from_document(self.settings)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid settings in project: {e}") from e


def project_file_name(pdf_file_name: str) -> str:
    """'drawing.pdf' -> 'drawing-project.json'."""
    return re.sub(r'\.pdf$', '', pdf_file_name, flags=re.IGNORECASE) + PROJECT_SUFFIX


def save_project(graph: TagGraph, settings: Optional[ExtractionSettings],
                 path: Union[str, Path], pdf_file_name: Optional[str] = None) -> Path:
    """
    Write a project file.

    Args:
        graph: Tag graph to save
        settings: Active pattern/tolerance configuration (defaults when None)
        path: Destination JSON file
        pdf_file_name: Name of the PDF the project belongs to

    Returns:
        The written path
    """
    path = Path(path)
    document = ProjectDocument.from_graph(graph, settings, pdf_file_name=pdf_file_name)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(document.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Could not write project file {path}: {e}") from e

    logger.info(
        f"Saved project to {path} ({len(document.tags)} tags, "
        f"{len(document.relationships)} relationships, {len(document.raw_text_items)} text items)"
    )
    return path


def parse_project(data: Any) -> Tuple[ProjectDocument, TagGraph]:
    """
    Validate a decoded project document and build its graph.

    Raises:
        ValidationError: missing pools, malformed entities or dangling relationships
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid project file format: expected a JSON object.")
    for key in ("tags", "relationships", "rawTextItems"):
        if not isinstance(data.get(key), list):
            raise ValidationError(f"Invalid project file format: '{key}' must be a list.")

    try:
        document = ProjectDocument.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid project file: {e}") from e
    return document, document.to_graph()


def load_project(path: Union[str, Path]) -> Tuple[TagGraph, ExtractionSettings, ProjectDocument]:
    """
    Read a project file.

    Returns:
        The tag graph, its extraction settings and the parsed document

    Raises:
        StorageError: the file cannot be read
        ValidationError: the content is not a valid project
        ConfigurationError: the saved tolerances are malformed
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Could not read project file {path}: {e}") from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Project file {path} is not valid JSON: {e}") from e

    document, graph = parse_project(data)
    logger.info(f"Loaded project {path} for '{document.pdf_file_name or 'unknown PDF'}'")
    return graph, document.extraction_settings(), document
