"""
Shared fixtures for the PID Tagger test suite.
"""

import sys
from pathlib import Path

import pytest

# Add the src directory to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from pid_tagger.services.extraction.models import TextPage, TextRun
from pid_tagger.services.tag_graph import TagGraph
from pid_tagger.shared.models.tags import BoundingBox, Category, RawTextItem


def _make_run(text, x, y, width=10.0, height=10.0):
    """Unrotated run anchored at (x, y)."""
    return TextRun(text=text, transform=[1, 0, 0, 1, x, y], width=width, height=height)


def _make_box(x1, y1, x2, y2):
    return BoundingBox(x1=x1, y1=y1, x2=x2, y2=y2)


class FakeTextProvider:
    """In-memory text layer that records which pages were requested."""

    def __init__(self, pages, fail_on=None):
        self.pages = pages
        self.fail_on = fail_on
        self.calls = []

    async def get_page(self, page_number):
        self.calls.append(page_number)
        if page_number == self.fail_on:
            raise RuntimeError("corrupted page")
        return self.pages[page_number]


@pytest.fixture
def make_run():
    return _make_run


@pytest.fixture
def make_box():
    return _make_box


@pytest.fixture
def stacked_instrument_runs():
    """'PT' sitting 5 units above '1001', centers aligned at x=105."""
    return [
        _make_run("PT", 100, 120, width=10, height=10),    # bbox y 118..130
        _make_run("1001", 98, 103, width=14, height=10),   # bbox y 101..113
    ]


@pytest.fixture
def provider_factory():
    def factory(pages, fail_on=None):
        return FakeTextProvider(pages, fail_on=fail_on)
    return factory


@pytest.fixture
def text_page():
    def factory(page_number, runs, width=None, height=None):
        return TextPage(page_number=page_number, runs=runs, width=width, height=height)
    return factory


@pytest.fixture
def graph():
    """Graph with three raw items on page 1 and one on page 2."""
    return TagGraph(raw_text_items=[
        RawTextItem(id="raw-a", text="P", page=1, bbox=_make_box(10, 10, 20, 20)),
        RawTextItem(id="raw-b", text="101", page=1, bbox=_make_box(22, 10, 40, 20)),
        RawTextItem(id="raw-c", text="PRESSURE TRANSMITTER", page=1, bbox=_make_box(100, 90, 180, 100)),
        RawTextItem(id="raw-d", text="OTHER SHEET", page=2, bbox=_make_box(100, 90, 180, 100)),
    ])


@pytest.fixture
def plant_graph():
    """
    A small curated plant: one vessel, one line, one instrument, a note and
    the drawing number of page 1.
    """
    graph = TagGraph(raw_text_items=[
        RawTextItem(id="desc", text="PRESSURE TRANSMITTER", page=1, bbox=_make_box(95, 130, 150, 140)),
        RawTextItem(id="far", text="FAR AWAY", page=1, bbox=_make_box(500, 500, 560, 510)),
    ])
    graph.create_manual_tag("V-101", _make_box(10, 10, 60, 30), 1, Category.EQUIPMENT)
    graph.create_manual_tag('6"-PL-1001-A1', _make_box(200, 10, 280, 20), 1, Category.LINE)
    graph.create_manual_tag("PT-1001", _make_box(98, 101, 112, 130), 1, Category.INSTRUMENT)
    graph.create_manual_tag("NOTE 5", _make_box(400, 400, 440, 410), 1, Category.NOTES_AND_HOLDS)
    graph.create_manual_tag("ABCDE-FGHIJ-001", _make_box(900, 10, 990, 20), 1, Category.DRAWING_NUMBER)
    return graph
