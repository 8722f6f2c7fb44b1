"""
Tests for the fragment merger (single-page tag extraction).
"""

import pytest

from pid_tagger.services.extraction.merger import FragmentMerger, extract_page_tags
from pid_tagger.shared.exceptions import ConfigurationError, ProcessingError
from pid_tagger.shared.models.settings import DEFAULT_PATTERNS, ExtractionSettings, PlainPattern
from pid_tagger.shared.models.tags import Category


def summary(result):
    return [(tag.text, tag.category) for tag in result.tags]


class TestInstrumentPairing:

    def test_stacked_fragments_become_one_instrument(self, text_page, stacked_instrument_runs):
        result = extract_page_tags(text_page(1, stacked_instrument_runs), {})

        assert summary(result) == [("PT-1001", Category.INSTRUMENT)]
        assert result.raw_text_items == []

    def test_instrument_box_is_union_of_fragments(self, text_page, stacked_instrument_runs):
        tag = extract_page_tags(text_page(1, stacked_instrument_runs), {}).tags[0]

        assert (tag.bbox.x1, tag.bbox.y1, tag.bbox.x2, tag.bbox.y2) == (98, 101, 112, 130)

    def test_fragments_are_kept_as_source_items(self, text_page, stacked_instrument_runs):
        tag = extract_page_tags(text_page(3, stacked_instrument_runs), {}).tags[0]

        assert [item.text for item in tag.source_items] == ["PT", "1001"]
        assert all(item.page == 3 for item in tag.source_items)
        assert tag.source_items[0].id != tag.source_items[1].id

    def test_gap_too_large_is_not_paired(self, text_page, make_run):
        runs = [make_run("PT", 100, 120), make_run("1001", 98, 80, width=14)]
        result = extract_page_tags(text_page(1, runs), {})

        assert result.tags == []
        assert [item.text for item in result.raw_text_items] == ["PT", "1001"]

    def test_number_above_function_is_not_paired(self, text_page, make_run):
        runs = [make_run("PT", 100, 103), make_run("1001", 98, 120, width=14)]

        assert extract_page_tags(text_page(1, runs), {}).tags == []

    def test_misaligned_fragments_are_not_paired(self, text_page, make_run):
        runs = [make_run("PT", 100, 120), make_run("1001", 140, 103, width=14)]

        assert extract_page_tags(text_page(1, runs), {}).tags == []

    def test_first_partner_in_run_order_wins(self, text_page, make_run):
        runs = [
            make_run("PT", 100, 120),
            make_run("1002", 98, 104, width=14),
            make_run("1001", 98, 103, width=14),
        ]
        result = extract_page_tags(text_page(1, runs), {})

        assert summary(result) == [("PT-1002", Category.INSTRUMENT)]
        assert [item.text for item in result.raw_text_items] == ["1001"]

    def test_lowercase_fragments_are_not_candidates(self, text_page, make_run):
        runs = [make_run("pt", 100, 120), make_run("1001", 98, 103, width=14)]

        assert extract_page_tags(text_page(1, runs), {}).tags == []

    def test_pairing_ignores_instrument_tolerance(self, text_page, make_run):
        runs = [make_run("PT", 100, 120), make_run("1001", 100, 96)]  # gap of 12
        tolerances = {Category.INSTRUMENT: {"horizontal": 20, "vertical": 15, "autoLinkDistance": 30}}

        assert extract_page_tags(text_page(1, runs), {}, tolerances).tags == []

    def test_pairing_without_spatial_tolerances(self, text_page, stacked_instrument_runs):
        tolerances = {Category.INSTRUMENT: {"autoLinkDistance": 30}}

        result = extract_page_tags(text_page(1, stacked_instrument_runs), {}, tolerances)

        assert summary(result) == [("PT-1001", Category.INSTRUMENT)]

    # "PT" at (100, 120) spans x 100..110 and y 118..130, center x 105.
    # A 10x10 number run at (x, y) spans y (y - 2)..(y + 10), center x + 5.

    @pytest.mark.parametrize("number_y, paired", [
        (98.5, True),     # gap 9.5
        (98, False),      # gap exactly 10
        (107.5, True),    # gap 0.5
        (108, False),     # boxes touch
        (110, False),     # boxes overlap
    ])
    def test_vertical_gap_limits(self, text_page, make_run, number_y, paired):
        runs = [make_run("PT", 100, 120), make_run("1001", 100, number_y)]

        tags = extract_page_tags(text_page(1, runs), {}).tags

        assert [tag.text for tag in tags] == (["PT-1001"] if paired else [])

    @pytest.mark.parametrize("number_x, paired", [
        (109.5, True),    # centers 9.5 apart
        (110, False),     # centers exactly 10 apart
        (90.5, True),     # 9.5 to the left
        (90, False),      # exactly 10 to the left
    ])
    def test_horizontal_offset_limits(self, text_page, make_run, number_x, paired):
        runs = [make_run("PT", 100, 120), make_run("1001", number_x, 103)]

        tags = extract_page_tags(text_page(1, runs), {}).tags

        assert [tag.text for tag in tags] == (["PT-1001"] if paired else [])


class TestClassification:

    def test_end_to_end_page(self, text_page, make_run, stacked_instrument_runs):
        runs = stacked_instrument_runs + [
            make_run("AB-CD-2001", 300, 500, width=60),
            make_run("NOTE 5", 50, 50, width=30),
        ]
        patterns = {
            Category.EQUIPMENT: r"[A-Z]{2}-[A-Z]{2}-\d{4}",
            Category.NOTES_AND_HOLDS: r"(?:NOTE|HOLD)\s+\d+",
        }

        result = extract_page_tags(text_page(1, runs), patterns)

        assert sorted(summary(result)) == sorted([
            ("PT-1001", Category.INSTRUMENT),
            ("AB-CD-2001", Category.EQUIPMENT),
            ("NOTE 5", Category.NOTES_AND_HOLDS),
        ])
        assert result.raw_text_items == []

    def test_classified_tag_uses_run_box(self, text_page, make_run):
        result = extract_page_tags(
            text_page(1, [make_run("AB-CD-2001", 300, 500, width=60)]),
            {Category.EQUIPMENT: r"[A-Z]{2}-[A-Z]{2}-\d{4}"},
        )
        tag = result.tags[0]

        assert (tag.bbox.x1, tag.bbox.y1, tag.bbox.x2, tag.bbox.y2) == (300, 498, 360, 510)
        assert tag.source_items == []

    def test_duplicate_text_on_page_is_tagged_once(self, text_page, make_run):
        runs = [make_run("AB-CD-2001", 300, 500, width=60), make_run("AB-CD-2001", 300, 100, width=60)]
        result = extract_page_tags(text_page(1, runs), {Category.EQUIPMENT: r"[A-Z]{2}-[A-Z]{2}-\d{4}"})

        assert summary(result) == [("AB-CD-2001", Category.EQUIPMENT)]
        assert result.raw_text_items == []

    def test_paired_instrument_is_not_tagged_twice(self, text_page, make_run, stacked_instrument_runs):
        runs = stacked_instrument_runs + [make_run("PT-1001", 400, 400, width=40)]
        patterns = {Category.INSTRUMENT: PlainPattern(pattern=r"[A-Z]{2}-\d{4}")}

        result = extract_page_tags(text_page(1, runs), patterns)

        assert summary(result) == [("PT-1001", Category.INSTRUMENT)]

    def test_run_matching_several_categories_yields_several_tags(self, text_page, make_run):
        result = extract_page_tags(
            text_page(1, [make_run("AB-CD-2001", 300, 500, width=60)]),
            {Category.EQUIPMENT: r"[A-Z]{2}-[A-Z]{2}-\d{4}", Category.LINE: r"\d{4}"},
        )

        assert summary(result) == [("AB-CD-2001", Category.EQUIPMENT), ("2001", Category.LINE)]

    def test_invalid_pattern_becomes_warning(self, text_page, make_run):
        result = extract_page_tags(
            text_page(1, [make_run("AB-CD-2001", 300, 500, width=60)]),
            {Category.EQUIPMENT: r"([", Category.LINE: r"\d{4}"},
        )

        assert summary(result) == [("2001", Category.LINE)]
        assert len(result.warnings) == 1
        assert "Equipment" in result.warnings[0]

    def test_function_number_pattern_outside_instrument_becomes_warning(self, text_page, make_run):
        result = extract_page_tags(
            text_page(1, [make_run("AB-CD-2001", 300, 500, width=60)]),
            {Category.EQUIPMENT: {"func": "[A-Z]{2}", "num": "x"}, Category.LINE: r"\d{4}"},
        )

        assert summary(result) == [("2001", Category.LINE)]
        assert len(result.warnings) == 1
        assert "Equipment" in result.warnings[0]

    def test_unsupported_pattern_value_becomes_warning(self, text_page, make_run):
        result = extract_page_tags(
            text_page(1, [make_run("AB-CD-2001", 300, 500, width=60)]),
            {Category.EQUIPMENT: 42, Category.LINE: r"\d{4}"},
        )

        assert summary(result) == [("2001", Category.LINE)]
        assert len(result.warnings) == 1

    def test_malformed_tolerances_are_a_configuration_error(self, text_page, stacked_instrument_runs):
        with pytest.raises(ConfigurationError):
            extract_page_tags(
                text_page(1, stacked_instrument_runs), {}, {Category.INSTRUMENT: {"horizontal": -1}}
            )

    def test_unmatched_runs_stay_raw(self, text_page, make_run):
        result = extract_page_tags(text_page(2, [make_run("PRESSURE", 10, 10, width=40)]), {})

        assert result.tags == []
        assert [(item.text, item.page) for item in result.raw_text_items] == [("PRESSURE", 2)]

    def test_blank_runs_are_ignored(self, text_page, make_run):
        result = extract_page_tags(text_page(1, [make_run("   ", 10, 10), make_run("", 30, 10)]), {})

        assert result.tags == []
        assert result.raw_text_items == []


class TestDrawingNumber:

    PATTERNS = {Category.DRAWING_NUMBER: DEFAULT_PATTERNS[Category.DRAWING_NUMBER]}

    def test_match_nearest_bottom_right_corner_wins(self, text_page, make_run):
        runs = [
            make_run("ABCDE-FGHIJ-002", 100, 700, width=80),
            make_run("ABCDE-FGHIJ-001", 900, 20, width=80),
        ]
        result = extract_page_tags(text_page(1, runs, width=1000, height=800), self.PATTERNS)

        assert summary(result) == [("ABCDE-FGHIJ-001", Category.DRAWING_NUMBER)]
        assert [item.text for item in result.raw_text_items] == ["ABCDE-FGHIJ-002"]

    def test_skipped_without_page_width(self, text_page, make_run):
        runs = [make_run("ABCDE-FGHIJ-001", 900, 20, width=80)]
        result = extract_page_tags(text_page(1, runs), self.PATTERNS)

        assert result.tags == []
        assert len(result.raw_text_items) == 1

    def test_unusable_pattern_becomes_warning(self, text_page, make_run):
        runs = [make_run("ABCDE-FGHIJ-001", 900, 20, width=80)]
        result = extract_page_tags(text_page(1, runs, width=1000, height=800), {Category.DRAWING_NUMBER: ["x"]})

        assert result.tags == []
        assert len(result.warnings) == 1
        assert "DrawingNumber" in result.warnings[0]


class TestMergerInput:

    def test_missing_page_is_rejected(self):
        with pytest.raises(ProcessingError):
            FragmentMerger().extract_page(None)

    def test_default_settings_classify_equipment(self, text_page, make_run):
        merger = FragmentMerger(ExtractionSettings())
        result = merger.extract_page(text_page(1, [make_run("P-101-A", 10, 10, width=40)]))

        assert summary(result) == [("P-101-A", Category.EQUIPMENT)]
