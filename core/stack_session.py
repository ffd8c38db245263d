from typing import Any, List, Optional

from config.logger import logger
from core import stack_state
from core.deal_fetcher import CandidatePager
from core.errors import ApiError, CartSmartError, StackRuleError, SubmissionValidationError
from core.pricing import PriceFields, clamp_discount, override_price, recompute
from core.submission import build_payload
from models.deal import Deal
from models.stacked_deal import StackedDeal
from services.deals_api import CartSmartAPI

CREATE = "create"
EDIT = "edit"


class StackSession:
    """
    One stacked-deal editor for a product: the candidate list, the chosen
    steps, the price inputs and the description.

    Rule violations and API failures never escape; they are logged and
    appended to ``messages`` so the caller can show them, and the session
    stays usable.
    """

    def __init__(
        self,
        api: CartSmartAPI,
        product_id: int,
        mode: str = CREATE,
        existing: Optional[StackedDeal] = None,
        page_size: Optional[int] = None,
    ):
        if mode not in (CREATE, EDIT):
            raise ValueError(f"Unknown mode: {mode}")
        self.api = api
        self.product_id = product_id
        self.mode = mode
        self.existing = existing if mode == EDIT else None
        self.pager = CandidatePager(api, product_id, page_size)
        self.state = stack_state.clear()
        self.fields = PriceFields()
        self.description = ""
        self.messages: List[str] = []
        self.submitting = False
        self.is_open = False

    @property
    def editing(self) -> bool:
        return self.existing is not None

    @property
    def available(self) -> List[Deal]:
        return stack_state.available_deals(self.state, self.pager.deals)

    @property
    def can_submit(self) -> bool:
        return not self.submitting and len(self.state) >= 2

    # --- Lifecycle ---

    async def open(self):
        self.is_open = True
        self.state = stack_state.clear()
        self.fields = PriceFields()
        self.description = ""
        self.messages = []

        await self.pager.load_initial()
        generation = self.pager.generation
        if not self._current(generation):
            return
        if self.editing:
            await self._prefill(self.existing, generation)
            if not self._current(generation):
                return
        self._refresh_price()

    def close(self):
        self.pager.close()
        self.state = stack_state.clear()
        self.fields = PriceFields()
        self.description = ""
        self.is_open = False

    async def load_more(self) -> bool:
        if not self.is_open:
            return False
        return await self.pager.load_next()

    def _current(self, generation: int) -> bool:
        return self.is_open and generation == self.pager.generation

    async def _prefill(self, existing: StackedDeal, generation: int):
        self.description = existing.description
        self.fields = PriceFields(
            price=existing.price,
            discount_percent=existing.discount_percent,
            manual_override=True,
        )

        step_ids = existing.step_ids
        if existing.needs_step_lookup:
            try:
                full = await self.api.fetch_stacked_deal(existing.deal_id)
            except CartSmartError as e:
                logger.warning(f"⚠️ Could not load steps of stacked deal {existing.deal_id}: {e.message}")
                return
            step_ids = full.step_ids
        if not step_ids or not self._current(generation):
            return

        fetched = []
        for deal_id in step_ids:
            if not self._current(generation):
                break
            if self.pager.find(deal_id) is not None:
                continue
            try:
                fetched.append(await self.api.fetch_deal(deal_id))
            except CartSmartError as e:
                logger.warning(f"⚠️ Could not load step deal {deal_id}: {e.message}")

        if not self._current(generation):
            logger.debug(f"Dropping steps of stacked deal {existing.deal_id}: session was reset")
            return
        self.pager.add_known(fetched)
        self.state = stack_state.hydrate(step_ids, self.pager.find)

    # --- Editing ---

    def select(self, deal_id: int) -> bool:
        """Add a candidate to the stack, or take it out if it is already there."""
        deal = self.pager.find(deal_id)
        if deal is None:
            return False
        try:
            self.state = stack_state.toggle(self.state, deal)
        except StackRuleError as e:
            self._report(e.message)
            return False
        self._refresh_price()
        return True

    def remove(self, deal_id: int):
        self.state = stack_state.remove(self.state, deal_id)
        self._refresh_price()

    def move(self, from_index: int, to_index: int) -> bool:
        try:
            self.state = stack_state.reorder(self.state, from_index, to_index)
        except StackRuleError as e:
            self._report(e.message)
            return False
        self._refresh_price()
        return True

    def set_price(self, value: Any):
        self.fields = override_price(self.fields, value)
        self._refresh_price()

    def set_discount_percent(self, value: Any):
        self.fields = self.fields.model_copy(update={"discount_percent": clamp_discount(value)})

    def set_description(self, text: Optional[str]):
        self.description = text or ""

    def _refresh_price(self):
        self.fields = recompute(self.fields, self.state.selected)

    # --- Submission ---

    async def submit(self) -> Optional[Any]:
        """
        Send the stack to the API.

        Returns:
            The decoded response body on success, None when validation or the
            request failed (the reason is in ``messages``)
        """
        if self.submitting:
            return None
        if not self.api.cookie:
            self._report("Please log in to submit a deal")
            return None
        try:
            payload = build_payload(self.product_id, self.state, self.fields, self.description, self.existing)
        except SubmissionValidationError as e:
            self._report(e.message)
            return None

        self.submitting = True
        try:
            if self.editing and self.existing.deal_product_id:
                result = await self.api.update_stacked_deal(self.existing.deal_product_id, payload)
            else:
                result = await self.api.create_stacked_deal(payload)
        except ApiError as e:
            self._report(e.message)
            return None
        finally:
            self.submitting = False

        if self.editing:
            logger.info("✅ Stacked deal updated. It will be reviewed if required.")
        else:
            logger.info("✅ Stacked deal submitted successfully and will be reviewed.")
        self.close()
        return result if result is not None else {}

    def _report(self, message: str):
        logger.warning(f"⚠️ {message}")
        self.messages.append(message)
