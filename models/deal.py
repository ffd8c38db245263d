import math
from enum import IntEnum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.errors import MalformedDealError


class DealType(IntEnum):
    DIRECT = 1
    COUPON = 2
    STACKED = 3
    EXTERNAL = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()


# A stack can never contain another stack
STACKABLE_DEAL_TYPES = (DealType.DIRECT, DealType.COUPON, DealType.EXTERNAL)


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class Deal(BaseModel):
    """
    One offer for a product at a store, as listed by the CartSmart API.

    The API is not consistent about casing (``store_id`` vs ``storeId``) and
    sends numbers as strings now and then, so everything is normalized here,
    once, and the rest of the code can trust the fields.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    deal_id: int = Field(validation_alias=AliasChoices("deal_id", "dealId", "id"))
    store_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("store_id", "storeId"))
    deal_type: Optional[DealType] = Field(
        default=None, validation_alias=AliasChoices("deal_type_id", "dealTypeId", "deal_type")
    )
    price: float = 0.0
    discount_percent: float = Field(
        default=0.0, validation_alias=AliasChoices("discount_percent", "discountPercent")
    )
    coupon_code: Optional[str] = Field(default=None, validation_alias=AliasChoices("coupon_code", "couponCode"))
    additional_details: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("additional_details", "additionalDetails")
    )
    store_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("store_url", "storeUrl"))
    deal_product_id: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("deal_product_id", "dealProductId")
    )

    @field_validator("store_id", "deal_product_id", mode="before")
    @classmethod
    def _optional_id(cls, value):
        number = _as_number(value)
        if number is None or not number.is_integer():
            return None
        return int(number)

    @field_validator("deal_type", mode="before")
    @classmethod
    def _known_type(cls, value):
        number = _as_number(value)
        if number is None or not number.is_integer():
            return None
        try:
            return DealType(int(number))
        except ValueError:
            return None

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, value):
        return _as_number(value) or 0.0

    @field_validator("discount_percent", mode="before")
    @classmethod
    def _percent(cls, value):
        number = _as_number(value) or 0.0
        return min(max(number, 0.0), 100.0)

    @field_validator("coupon_code", "additional_details", "store_url", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @property
    def has_store(self) -> bool:
        return self.store_id is not None

    @property
    def is_direct(self) -> bool:
        return self.deal_type == DealType.DIRECT

    @property
    def type_label(self) -> str:
        return self.deal_type.label if self.deal_type else "Unknown"

    @classmethod
    def from_api(cls, raw: Any) -> "Deal":
        """Parse one API record, raising MalformedDealError when it has no usable id."""
        if not isinstance(raw, dict):
            raise MalformedDealError(f"Expected a deal object, got {type(raw).__name__}")
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise MalformedDealError(f"Invalid deal record: {e.errors()[0]['msg']}") from e
