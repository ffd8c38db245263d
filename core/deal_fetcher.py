from typing import Iterable, List, Optional

from config import settings
from config.logger import logger
from core.errors import ApiError
from models.deal import Deal
from services.deals_api import CartSmartAPI
from utils.deal_dedup import merge_unique


class CandidatePager:
    """
    Page-number paging over the deals that can go into a stack.

    Pages are accumulated into one list, deduplicated by deal id. Each reset or
    close bumps ``generation``; a response that comes back for an older
    generation is dropped instead of merged.
    """

    def __init__(self, api: CartSmartAPI, product_id: int, page_size: Optional[int] = None):
        self.api = api
        self.product_id = product_id
        self.page_size = page_size or settings.PAGE_SIZE
        self.deals: List[Deal] = []
        self.page = 0
        self.has_more = True
        self.loading = False
        self.closed = False
        self.generation = 0

    def reset(self):
        self.generation += 1
        self.deals = []
        self.page = 0
        self.has_more = True
        self.loading = False
        self.closed = False

    def close(self):
        self.generation += 1
        self.closed = True
        self.loading = False

    def find(self, deal_id: int) -> Optional[Deal]:
        return next((d for d in self.deals if d.deal_id == deal_id), None)

    def add_known(self, deals: Iterable[Deal]):
        self.deals = merge_unique(self.deals, deals)

    async def load_initial(self) -> bool:
        self.reset()
        return await self._load(1, initial=True)

    async def load_next(self) -> bool:
        """Fetch the next page. Returns False when nothing was fetched or merged."""
        if self.closed or not self.has_more or self.loading:
            return False
        return await self._load(self.page + 1, initial=False)

    async def _load(self, page: int, initial: bool) -> bool:
        generation = self.generation
        self.loading = True
        try:
            result = await self.api.fetch_deals_page(self.product_id, page, self.page_size)
        except ApiError as e:
            if generation != self.generation:
                logger.debug(f"Dropping failed page {page} from an old generation")
                return False
            logger.error(f"❌ Failed to load candidate deals (page {page}): {e.message}")
            if initial:
                self.deals = []
            self.has_more = False
            self.loading = False
            return False

        if generation != self.generation:
            logger.debug(f"Dropping stale page {page} for product {self.product_id}")
            return False

        self.deals = merge_unique(self.deals, result.deals)
        full_page = result.raw_count == self.page_size
        self.has_more = full_page
        if full_page or initial:
            self.page = page
        self.loading = False
        logger.info(f"📦 Page {page}: {len(result.deals)} deals ({len(self.deals)} loaded, more={self.has_more})")
        return True
