"""
PyMuPDF text-layer provider.

Converts the spans of ``page.get_text("dict")`` into text runs with a
2x3 transform in PDF user space (origin bottom-left, y up), the shape the
fragment merger expects.
"""

import asyncio
from pathlib import Path
from typing import List, Optional, Union

import fitz  # PyMuPDF

from ...exceptions import ExternalIOError
from ....services.extraction.models import TextPage, TextRun
from ..monitoring.logger import get_logger


class PyMuPDFTextProvider:
    """Reads text runs page by page from a PDF file."""

    def __init__(self, pdf_path: Union[str, Path]):
        self.logger = get_logger(__name__)
        self.pdf_path = Path(pdf_path)
        if not self.pdf_path.exists():
            raise ExternalIOError(f"PDF file not found: {self.pdf_path}")
        try:
            self._doc = fitz.open(self.pdf_path)
        except Exception as e:
            raise ExternalIOError(f"Cannot open PDF {self.pdf_path}: {e}") from e
        self.logger.info(f"Opened {self.pdf_path.name} ({self.page_count} pages)")

    @property
    def page_count(self) -> int:
        return len(self._doc)

    async def get_page(self, page_number: int) -> TextPage:
        """Text runs of a 1-based page."""
        return await asyncio.to_thread(self.read_page, page_number)

    def read_page(self, page_number: int) -> TextPage:
        if not 1 <= page_number <= self.page_count:
            raise ExternalIOError(
                f"Page {page_number} is out of range (1..{self.page_count})", page_number=page_number
            )

        page = self._doc[page_number - 1]
        page_height = page.rect.height
        runs: List[TextRun] = []

        for block in page.get_text("dict").get("blocks", []):
            if block.get("type", 0) != 0:
                continue
            for line in block.get("lines", []):
                cos, sin = line.get("dir", (1.0, 0.0))
                for span in line.get("spans", []):
                    text = span.get("text", "")
                    if not text.strip():
                        continue
                    size = span.get("size", 0.0)
                    x0, y0, x1, y1 = span["bbox"]
                    origin_x, origin_y = span["origin"]
                    runs.append(TextRun(
                        text=text,
                        # PyMuPDF measures y downward; flip into PDF space
                        transform=[cos * size, -sin * size, sin * size, cos * size,
                                   origin_x, page_height - origin_y],
                        width=abs(cos) * (x1 - x0) + abs(sin) * (y1 - y0),
                        height=size,
                    ))

        self.logger.debug(f"Page {page_number}: {len(runs)} text runs")
        return TextPage(page_number=page_number, runs=runs, width=page.rect.width, height=page_height)

    def close(self) -> None:
        if self._doc is not None:
            self._doc.close()
            self._doc = None

    def __enter__(self) -> "PyMuPDFTextProvider":
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        self.close()
        return None
