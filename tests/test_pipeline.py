"""
Tests for the document extraction pipeline.
"""

import logging

import pytest

from pid_tagger.services.extraction import ExtractionPipeline, process_document
from pid_tagger.shared.exceptions import ExternalIOError, ValidationError
from pid_tagger.shared.models.settings import ExtractionSettings
from pid_tagger.shared.models.tags import Category


@pytest.fixture
def two_pages(text_page, make_run, stacked_instrument_runs):
    return {
        1: text_page(1, stacked_instrument_runs),
        2: text_page(2, [make_run("AB-CD-2001", 300, 500, width=60), make_run("LEGEND", 10, 10, width=40)]),
    }


@pytest.fixture
def settings():
    return ExtractionSettings(patterns={Category.EQUIPMENT: r"[A-Z]{2}-[A-Z]{2}-\d{4}"})


@pytest.mark.asyncio
async def test_pages_are_aggregated_in_order(two_pages, provider_factory, settings):
    provider = provider_factory(two_pages)

    result = await process_document(2, provider, settings)

    assert provider.calls == [1, 2]
    assert [(tag.text, tag.page) for tag in result.tags] == [("PT-1001", 1), ("AB-CD-2001", 2)]
    assert [item.text for item in result.raw_text_items] == ["LEGEND"]
    assert result.page_count == 2


@pytest.mark.asyncio
async def test_progress_is_reported_after_each_page(two_pages, provider_factory, settings):
    seen = []

    await process_document(2, provider_factory(two_pages), settings, on_progress=seen.append)

    assert [(p.current, p.total) for p in seen] == [(1, 2), (2, 2)]


@pytest.mark.asyncio
async def test_provider_failure_aborts_document(two_pages, provider_factory, settings):
    provider = provider_factory(two_pages, fail_on=2)

    with pytest.raises(ExternalIOError) as exc_info:
        await process_document(2, provider, settings)

    assert exc_info.value.page_number == 2
    assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_wrong_page_from_provider_is_an_io_error(two_pages, provider_factory, settings):
    provider = provider_factory({1: two_pages[2]})

    with pytest.raises(ExternalIOError):
        await process_document(1, provider, settings)


@pytest.mark.asyncio
async def test_iteration_can_stop_early(two_pages, provider_factory, settings):
    provider = provider_factory(two_pages)
    pipeline = ExtractionPipeline(settings)

    async for page_result in pipeline.iter_pages(2, provider):
        assert page_result.page == 1
        assert (page_result.progress.current, page_result.progress.total) == (1, 2)
        break

    assert provider.calls == [1]


@pytest.mark.asyncio
async def test_new_run_restarts_from_first_page(two_pages, provider_factory, settings):
    provider = provider_factory(two_pages)
    pipeline = ExtractionPipeline(settings)

    await pipeline.process_document(2, provider)
    await pipeline.process_document(2, provider)

    assert provider.calls == [1, 2, 1, 2]


@pytest.mark.asyncio
async def test_empty_document(provider_factory):
    result = await process_document(0, provider_factory({}))

    assert result.tags == []
    assert result.raw_text_items == []


@pytest.mark.asyncio
async def test_negative_page_count_is_rejected(provider_factory):
    with pytest.raises(ValidationError):
        await process_document(-1, provider_factory({}))


@pytest.mark.asyncio
async def test_page_warnings_are_prefixed(text_page, make_run, provider_factory):
    settings = ExtractionSettings(patterns={Category.EQUIPMENT: r"(["})
    provider = provider_factory({1: text_page(1, [make_run("AB", 0, 0)])})

    result = await process_document(1, provider, settings)

    assert len(result.warnings) == 1
    assert result.warnings[0].startswith("Page 1: ")
    assert result.get_summary()["warning_count"] == 1


@pytest.mark.asyncio
async def test_each_page_is_logged_with_its_position(two_pages, provider_factory, settings, caplog):
    with caplog.at_level(logging.INFO, logger="pid_tagger.services.extraction.pipeline"):
        await process_document(2, provider_factory(two_pages), settings)

    page_lines = [record.getMessage() for record in caplog.records if record.getMessage().startswith("[page")]
    assert page_lines == [
        "[page 1/2] 1 tags, 0 raw text items, 0 warning(s)",
        "[page 2/2] 1 tags, 1 raw text items, 0 warning(s)",
    ]
