"""
Orchestration client for PID Tagger.

Coordinates the services:
- extraction: PDF text layer -> tags and raw text
- tag_graph: curation, relationships and project files
- export: Excel/CSV output

Usage:
    from pid_tagger.client import PidTagger

    tagger = PidTagger()
    graph, result = tagger.extract_pdf("P&ID-001.pdf")
    tagger.auto_link(graph)
    tagger.export_excel(graph, "P&ID_Tag_Export.xlsx")
"""

import asyncio
from pathlib import Path
from typing import Optional, Tuple, Union

from dotenv import load_dotenv

from .services.export import TagSheetExporter
from .services.extraction import DocumentExtraction, ExtractionPipeline
from .services.extraction.pipeline import ProgressCallback
from .services.tag_graph import TagGraph, load_project, save_project
from .shared.config import Settings, get_settings
from .shared.infrastructure import get_logger, setup_logging
from .shared.infrastructure.pdf import PyMuPDFTextProvider
from .shared.models.settings import ExtractionSettings

# Load environment variables
load_dotenv()


class PidTagger:
    """
    Root client tying extraction, curation and export together.

    The extraction configuration is resolved once, from the explicit argument
    or the settings file named by ``PID_TAGGER_SETTINGS_FILE``.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 extraction_settings: Optional[ExtractionSettings] = None):
        self.settings = settings or get_settings()
        setup_logging()
        self.logger = get_logger(__name__)
        self.extraction_settings = extraction_settings or self.settings.extraction_settings()
        self.pdf_file_name: Optional[str] = None

    async def extract_pdf_async(self, pdf_path: Union[str, Path],
                                on_progress: Optional[ProgressCallback] = None) -> Tuple[TagGraph, DocumentExtraction]:
        """
        Extract every page of a PDF.

        Returns:
            The seeded tag graph and the raw extraction result (with warnings)
        """
        pipeline = ExtractionPipeline(self.extraction_settings)
        with PyMuPDFTextProvider(pdf_path) as provider:
            result = await pipeline.process_document(provider.page_count, provider, on_progress=on_progress)
        summary = result.get_summary()
        self.logger.info(f"Extraction summary for {Path(pdf_path).name}: {summary}")
        return TagGraph.from_extraction(result), result

    def extract_pdf(self, pdf_path: Union[str, Path],
                    on_progress: Optional[ProgressCallback] = None) -> Tuple[TagGraph, DocumentExtraction]:
        """Synchronous wrapper around ``extract_pdf_async``."""
        return asyncio.run(self.extract_pdf_async(pdf_path, on_progress=on_progress))

    def auto_link(self, graph: TagGraph, distance: Optional[float] = None) -> int:
        """Auto-link descriptions using the configured Instrument distance unless overridden."""
        if distance is None:
            distance = self.extraction_settings.auto_link_distance
        return graph.auto_link_descriptions(distance)

    def save_project(self, graph: TagGraph, path: Union[str, Path],
                     pdf_file_name: Optional[str] = None) -> Path:
        return save_project(graph, self.extraction_settings, path, pdf_file_name=pdf_file_name or self.pdf_file_name)

    def load_project(self, path: Union[str, Path]) -> TagGraph:
        """Load a project and adopt its saved extraction settings."""
        graph, extraction_settings, document = load_project(path)
        self.extraction_settings = extraction_settings
        self.pdf_file_name = document.pdf_file_name
        return graph

    def export_excel(self, graph: TagGraph, path: Optional[Union[str, Path]] = None) -> Path:
        """Write the Excel export (defaults to ``output_dir/export_file_name``)."""
        if path is None:
            path = Path(self.settings.output_dir) / self.settings.export_file_name
        return TagSheetExporter(graph).write_excel(path)
