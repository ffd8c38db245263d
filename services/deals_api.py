import asyncio
import json
from typing import Any, Iterable, List, Optional

import aiohttp
from pydantic import BaseModel, ValidationError

from config import settings
from config.logger import logger
from core.errors import ApiError, DuplicateDealError, MalformedDealError, SubmissionLimitError
from models.deal import Deal, DealType, STACKABLE_DEAL_TYPES
from models.stacked_deal import StackedDeal, StackPayload
from utils.deal_dedup import normalize_deal_list, parse_deals


class DealPage(BaseModel):
    deals: List[Deal]
    # Number of records the server sent, including ones we could not parse
    raw_count: int


class CartSmartAPI:
    """Client for the CartSmart deal endpoints (cookie-authenticated JSON over HTTP)."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        cookie: Optional[str] = None,
        user_id: Optional[int] = None,
        timeout: Optional[int] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = (base_url or settings.API_URL).rstrip("/")
        self.cookie = cookie if cookie is not None else settings.SESSION_COOKIE
        self.user_id = user_id if user_id is not None else settings.USER_ID
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self._session = session
        self._owns_session = session is None

        if not self.cookie:
            logger.warning("⚠️ CARTSMART_SESSION_COOKIE not set! Stacked deal submissions will be rejected.")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"accept": "application/json, text/plain, */*"}
            if self.cookie:
                headers["cookie"] = self.cookie
            self._session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_session = True
        return self._session

    async def close(self):
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    # --- Reads ---

    async def fetch_deals_page(
        self,
        product_id: int,
        page: int,
        page_size: int,
        deal_types: Iterable[DealType] = STACKABLE_DEAL_TYPES,
    ) -> DealPage:
        """
        Fetch one page of candidate deals for a product.

        Args:
            product_id: Product whose deals are listed
            page: 1-based page number
            page_size: Requested number of deals per page
            deal_types: Deal types to include (stacked deals are left out by default)

        Returns:
            DealPage with the parsed deals and the raw record count
        """
        params = [
            ("page", str(page)),
            ("pageSize", str(page_size)),
            ("userId", str(self.user_id or 0)),
        ]
        params.extend(("dealTypeId", str(int(t))) for t in deal_types)

        data = await self._request(
            "GET", f"/api/deals/product/{product_id}", params=params, fallback="Failed to load deals"
        )
        records = normalize_deal_list(data)
        return DealPage(deals=parse_deals(records), raw_count=len(records))

    async def fetch_deal(self, deal_id: int) -> Deal:
        data = await self._request("GET", f"/api/deals/{deal_id}", fallback="Failed to load deal")
        return Deal.from_api(data)

    async def fetch_stacked_deal(self, deal_id: int) -> StackedDeal:
        data = await self._request("GET", f"/api/deals/{deal_id}", fallback="Failed to load deal")
        if not isinstance(data, dict):
            raise MalformedDealError("Failed to load deal: unexpected response")
        try:
            return StackedDeal.model_validate(data)
        except ValidationError as e:
            raise MalformedDealError(f"Invalid stacked deal record: {e.errors()[0]['msg']}") from e

    # --- Writes ---

    async def create_stacked_deal(self, payload: StackPayload) -> Any:
        logger.info(f"📤 Creating stacked deal for product {payload.product_id} with {len(payload.deal_ids)} steps")
        return await self._request(
            "POST", "/api/deals", json_body=payload.to_request(), fallback="Failed to create stacked deal"
        )

    async def update_stacked_deal(self, deal_product_id: int, payload: StackPayload) -> Any:
        logger.info(f"📤 Updating stacked deal {deal_product_id} with {len(payload.deal_ids)} steps")
        return await self._request(
            "PUT",
            f"/api/deals/{deal_product_id}",
            json_body=payload.to_request(),
            fallback="Failed to update stacked deal",
        )

    # --- Plumbing ---

    async def _request(self, method: str, path: str, params=None, json_body=None, fallback: str = "Request failed"):
        url = f"{self.base_url}{path}"
        session = self._get_session()
        try:
            async with session.request(method, url, params=params, json=json_body) as response:
                text = await response.text()
                if 200 <= response.status < 300:
                    return self._decode(text, url)
                logger.error(f"❌ API Error: {method} {path} -> {response.status} - {text[:200]}")
                raise self._error_for(response.status, text, fallback)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"❌ API Exception: {method} {path}: {e!r}")
            raise ApiError(f"{fallback}: {e}" if str(e) else fallback) from e

    @staticmethod
    def _decode(text: str, url: str):
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError:
            logger.warning(f"⚠️ Unparseable response body from {url}; treating as empty")
            return None

    @staticmethod
    def _error_for(status: int, text: str, fallback: str) -> ApiError:
        body = None
        try:
            body = json.loads(text) if text.strip() else None
        except ValueError:
            pass

        if isinstance(body, dict):
            message = body.get("message") or fallback
        elif body is None and text.strip():
            message = text.strip()
        else:
            message = fallback

        if status == 409:
            existing = body.get("existingDealId") if isinstance(body, dict) else None
            return DuplicateDealError(message, existing_deal_id=existing)
        if status == 429:
            limit = body.get("limit") if isinstance(body, dict) else None
            used = body.get("used") if isinstance(body, dict) else None
            return SubmissionLimitError(message, limit=limit, used=used)
        return ApiError(message, status=status)
