from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from models.deal import Deal, DealType

# Stacked deals are always submitted as "new" condition
STACKED_CONDITION_ID = 1


def _step_id(step: Any) -> Optional[int]:
    if not isinstance(step, dict):
        return None
    for key in ("deal_id", "source_deal_id", "child_deal_id"):
        value = step.get(key)
        if value:
            try:
                return int(value)
            except (TypeError, ValueError):
                continue
    return None


class StackedDeal(BaseModel):
    """An existing stacked deal, loaded for editing."""

    model_config = ConfigDict(frozen=True)

    deal_id: int
    deal_product_id: Optional[int] = None
    product_id: Optional[int] = None
    deal_type: Optional[DealType] = None
    price: Optional[float] = None
    discount_percent: Optional[float] = None
    description: str = ""
    # None means the record came without steps and they have to be fetched
    step_ids: Optional[Tuple[int, ...]] = None

    @model_validator(mode="before")
    @classmethod
    def _from_api_shape(cls, data: Any):
        if not isinstance(data, dict):
            return data
        if "step_ids" in data:
            return data

        deal = Deal.from_api(data)
        steps = data.get("steps")
        step_ids = None
        if isinstance(steps, list):
            step_ids = tuple(i for i in (_step_id(s) for s in steps) if i)

        description = data.get("description") or data.get("additional_details") or data.get("additionalDetails") or ""
        price = data.get("price")
        discount = data.get("discount_percent", data.get("discountPercent"))
        return {
            "deal_id": deal.deal_id,
            "deal_product_id": deal.deal_product_id,
            "product_id": data.get("product_id", data.get("productId")),
            "deal_type": deal.deal_type,
            "price": deal.price if price not in (None, "") else None,
            "discount_percent": deal.discount_percent if discount not in (None, "") else None,
            "description": description,
            "step_ids": step_ids,
        }

    @property
    def needs_step_lookup(self) -> bool:
        return self.step_ids is None and self.deal_type == DealType.STACKED


class StackPayload(BaseModel):
    """Request body for creating or updating a stacked deal."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    product_id: int
    deal_url: str = ""
    price: float
    discount_percent: float
    deal_type_id: int = int(DealType.STACKED)
    condition_id: int = STACKED_CONDITION_ID
    additional_details: str
    deal_ids: List[int]
    # Only sent when editing an existing stack
    deal_id: Optional[int] = None
    deal_product_id: Optional[int] = None

    def to_request(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
