"""
Document extraction pipeline.

Fetches pages from a text-layer provider one at a time, runs the fragment
merger on each and aggregates the results. Pages are processed strictly in
order 1..N; the only suspension point is awaiting the provider.
"""

from typing import AsyncIterator, Callable, Optional, Protocol

from ...shared.exceptions import ExternalIOError, ValidationError
from ...shared.infrastructure.monitoring.logger import get_logger, get_page_logger
from ...shared.models.settings import ExtractionSettings
from .merger import FragmentMerger
from .models import DocumentExtraction, ExtractionProgress, PageExtraction, TextPage


ProgressCallback = Callable[[ExtractionProgress], None]


class TextLayerProvider(Protocol):
    """Source of per-page text runs (PDF parsing lives behind this interface)."""

    async def get_page(self, page_number: int) -> TextPage:
        ...


class ExtractionPipeline:
    """Runs tag extraction across every page of a document."""

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        self.logger = get_logger(__name__)
        self.settings = settings or ExtractionSettings()
        self.merger = FragmentMerger(self.settings)

    async def iter_pages(self, page_count: int, provider: TextLayerProvider) -> AsyncIterator[PageExtraction]:
        """
        Lazily extract pages 1..page_count, yielding one result per page.

        Each result carries a ``progress`` observation. A new call starts
        again from page 1. Stopping iteration early is the way to cancel.

        Raises:
            ValidationError: page_count is negative
            ExternalIOError: the provider failed to deliver a page
        """
        if page_count < 0:
            raise ValidationError(f"Page count must not be negative, got {page_count}")

        for page_number in range(1, page_count + 1):
            page = await self._fetch_page(provider, page_number)
            result = self.merger.extract_page(page)
            result.progress = ExtractionProgress(current=page_number, total=page_count)

            get_page_logger(__name__, page_number, page_count).info(
                f"{len(result.tags)} tags, {len(result.raw_text_items)} raw text items, "
                f"{len(result.warnings)} warning(s)"
            )
            yield result

    async def process_document(self, page_count: int, provider: TextLayerProvider,
                               on_progress: Optional[ProgressCallback] = None) -> DocumentExtraction:
        """
        Extract every page and return the aggregate.

        All or nothing: if any page fails, the pages already aggregated are
        discarded and the ExternalIOError propagates.

        Args:
            page_count: Number of pages in the document
            provider: Text-layer provider
            on_progress: Called with ``{current, total}`` after each page

        Returns:
            Tags, raw text items and warnings of the whole document
        """
        self.logger.info(f"Starting tag extraction for {page_count} page(s)")
        aggregate = DocumentExtraction(page_count=page_count)

        try:
            async for result in self.iter_pages(page_count, provider):
                aggregate.tags.extend(result.tags)
                aggregate.raw_text_items.extend(result.raw_text_items)
                aggregate.warnings.extend(f"Page {result.page}: {warning}" for warning in result.warnings)
                if on_progress is not None:
                    on_progress(result.progress)
        except ExternalIOError as e:
            self.logger.error(f"Tag extraction aborted: {e}")
            raise

        self.logger.info(
            f"Extracted {len(aggregate.tags)} tags and {len(aggregate.raw_text_items)} raw text items "
            f"from {page_count} page(s)"
        )
        return aggregate

    async def _fetch_page(self, provider: TextLayerProvider, page_number: int) -> TextPage:
        try:
            page = await provider.get_page(page_number)
        except Exception as e:
            raise ExternalIOError(f"Failed to read page {page_number}: {e}", page_number=page_number) from e

        if not isinstance(page, TextPage) or page.page_number != page_number:
            raise ExternalIOError(
                f"Text layer returned an unusable result for page {page_number}",
                page_number=page_number
            )
        return page


async def process_document(page_count: int, provider: TextLayerProvider,
                           settings: Optional[ExtractionSettings] = None,
                           on_progress: Optional[ProgressCallback] = None) -> DocumentExtraction:
    """
    Quick function to extract a whole document.

    Args:
        page_count: Number of pages
        provider: Text-layer provider
        settings: Resolved pattern/tolerance configuration
        on_progress: Optional progress callback

    Returns:
        Document-level extraction result
    """
    pipeline = ExtractionPipeline(settings)
    return await pipeline.process_document(page_count, provider, on_progress=on_progress)
