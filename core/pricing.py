import math
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from models.deal import Deal


class PriceQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    final_price: float
    discount_percent: float


class PriceFields(BaseModel):
    """The price and discount inputs of a stack being edited. None means blank."""

    model_config = ConfigDict(frozen=True)

    price: Optional[float] = None
    discount_percent: Optional[float] = None
    # Set once the user types a price; stops automatic price updates
    manual_override: bool = False


def derive_quote(deals: Sequence[Deal]) -> Optional[PriceQuote]:
    """
    Price of a stack, applying the steps in order.

    The first step's price seeds the chain and every later step only
    contributes its discount, compounded. The aggregate discount is a plain
    sum capped at 100, so it does not match the compounded price.
    """
    if not deals:
        return None

    final_price = deals[0].price
    for deal in deals[1:]:
        if deal.discount_percent > 0:
            final_price *= 1 - deal.discount_percent / 100

    total_discount = sum(d.discount_percent for d in deals)

    return PriceQuote(
        final_price=round(final_price, 2),
        discount_percent=round(min(total_discount, 100), 2),
    )


def recompute(fields: PriceFields, deals: Sequence[Deal]) -> PriceFields:
    """Refresh price and discount after the selection or its order changed."""
    quote = derive_quote(deals)
    if quote is None:
        if fields.manual_override:
            return fields
        return fields.model_copy(update={"price": None, "discount_percent": None})

    update = {"discount_percent": quote.discount_percent}
    if not fields.manual_override:
        update["price"] = quote.final_price
    return fields.model_copy(update=update)


def override_price(fields: PriceFields, value: Any) -> PriceFields:
    return fields.model_copy(update={"price": parse_amount(value), "manual_override": True})


def parse_amount(value: Any) -> Optional[float]:
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
    # inf and nan cannot be sent as JSON
    return number if math.isfinite(number) else None


def clamp_discount(value: Any) -> Optional[float]:
    """Discount as typed by the user, forced into 0..100. Non-numbers become blank."""
    number = parse_amount(value)
    if number is None:
        return None
    return min(max(number, 0.0), 100.0)
