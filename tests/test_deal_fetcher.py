import asyncio

import pytest

from core.deal_fetcher import CandidatePager
from core.errors import ApiError


def page_of(deal_factory, ids):
    return [deal_factory(i) for i in ids]


@pytest.mark.asyncio
async def test_pages_accumulate_until_short_page(fake_api, deal_factory):
    fake_api.pages = {1: page_of(deal_factory, [1, 2]), 2: page_of(deal_factory, [3, 4]), 3: page_of(deal_factory, [5])}
    pager = CandidatePager(fake_api, product_id=11, page_size=2)

    await pager.load_initial()
    assert pager.has_more
    while await pager.load_next():
        pass

    assert [d.deal_id for d in pager.deals] == [1, 2, 3, 4, 5]
    assert pager.has_more is False
    assert fake_api.page_calls == [1, 2, 3]

    # no further requests once the data ran out
    assert await pager.load_next() is False
    assert fake_api.page_calls == [1, 2, 3]


@pytest.mark.asyncio
async def test_overlapping_pages_are_deduplicated(fake_api, deal_factory):
    fake_api.pages = {1: page_of(deal_factory, [1, 2]), 2: page_of(deal_factory, [2, 3])}
    pager = CandidatePager(fake_api, product_id=11, page_size=2)

    await pager.load_initial()
    await pager.load_next()

    assert [d.deal_id for d in pager.deals] == [1, 2, 3]
    assert pager.find(3).deal_id == 3
    assert pager.find(42) is None


@pytest.mark.asyncio
async def test_initial_failure_clears_and_stops(fake_api, deal_factory):
    fake_api.pages = {1: ApiError("Failed to load deals", status=500)}
    pager = CandidatePager(fake_api, product_id=11, page_size=2)
    pager.deals = page_of(deal_factory, [8])

    assert await pager.load_initial() is False

    assert pager.deals == []
    assert pager.has_more is False
    assert await pager.load_next() is False
    assert fake_api.page_calls == [1]


@pytest.mark.asyncio
async def test_later_failure_keeps_loaded_deals(fake_api, deal_factory):
    fake_api.pages = {1: page_of(deal_factory, [1, 2]), 2: ApiError("boom", status=502)}
    pager = CandidatePager(fake_api, product_id=11, page_size=2)

    await pager.load_initial()
    assert await pager.load_next() is False

    assert [d.deal_id for d in pager.deals] == [1, 2]
    assert pager.has_more is False


@pytest.mark.asyncio
async def test_concurrent_next_page_requests_are_skipped(fake_api, deal_factory):
    fake_api.pages = {1: page_of(deal_factory, [1, 2]), 2: page_of(deal_factory, [3, 4])}
    pager = CandidatePager(fake_api, product_id=11, page_size=2)
    await pager.load_initial()

    fake_api.gate = asyncio.Event()
    first = asyncio.create_task(pager.load_next())
    await asyncio.sleep(0)
    second = await pager.load_next()
    fake_api.gate.set()

    assert second is False
    assert await first is True
    assert fake_api.page_calls == [1, 2]
    assert [d.deal_id for d in pager.deals] == [1, 2, 3, 4]


@pytest.mark.asyncio
async def test_response_after_reset_is_discarded(fake_api, deal_factory):
    fake_api.pages = {1: page_of(deal_factory, [1, 2])}
    pager = CandidatePager(fake_api, product_id=11, page_size=2)

    fake_api.gate = asyncio.Event()
    stale = asyncio.create_task(pager.load_initial())
    await asyncio.sleep(0)
    pager.close()
    fake_api.gate.set()

    assert await stale is False
    assert pager.deals == []
    assert await pager.load_next() is False


@pytest.mark.asyncio
async def test_add_known_merges_without_duplicates(fake_api, deal_factory):
    fake_api.pages = {1: page_of(deal_factory, [1])}
    pager = CandidatePager(fake_api, product_id=11, page_size=2)
    await pager.load_initial()

    pager.add_known(page_of(deal_factory, [1, 7]))

    assert [d.deal_id for d in pager.deals] == [1, 7]
