import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from core.errors import ApiError
from models.deal import Deal, DealType
from models.stacked_deal import StackedDeal
from services.deals_api import DealPage


class FakeDealsAPI:
    """In-memory stand-in for CartSmartAPI with the same coroutine surface."""

    def __init__(self, pages=None, details=None, cookie="session=test"):
        self.cookie = cookie
        # page number -> list of Deal, or an ApiError to raise
        self.pages = pages or {}
        self.details = details or {}
        self.page_calls = []
        self.detail_calls = []
        self.created = []
        self.updated = []
        self.submit_error = None
        # When set, fetch_deals_page waits on it before answering
        self.gate = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        pass

    async def fetch_deals_page(self, product_id, page, page_size, deal_types=None):
        self.page_calls.append(page)
        if self.gate is not None:
            await self.gate.wait()
        result = self.pages.get(page, [])
        if isinstance(result, Exception):
            raise result
        return DealPage(deals=result, raw_count=len(result))

    async def fetch_deal(self, deal_id):
        self.detail_calls.append(deal_id)
        raw = self.details.get(deal_id)
        if raw is None:
            raise ApiError("Failed to load deal", status=404)
        return Deal.from_api(raw)

    async def fetch_stacked_deal(self, deal_id):
        self.detail_calls.append(deal_id)
        raw = self.details.get(deal_id)
        if raw is None:
            raise ApiError("Failed to load deal", status=404)
        return StackedDeal.model_validate(raw)

    async def create_stacked_deal(self, payload):
        if self.submit_error:
            raise self.submit_error
        self.created.append(payload)
        return {"id": 900}

    async def update_stacked_deal(self, deal_product_id, payload):
        if self.submit_error:
            raise self.submit_error
        self.updated.append((deal_product_id, payload))
        return {"id": deal_product_id}


def make_deal(deal_id, store_id=10, deal_type=DealType.COUPON, price=100.0, discount=0.0, **extra):
    return Deal(
        deal_id=deal_id,
        store_id=store_id,
        deal_type=deal_type,
        price=price,
        discount_percent=discount,
        **extra,
    )


@pytest.fixture
def deal_factory():
    return make_deal


@pytest.fixture
def fake_api():
    return FakeDealsAPI()
