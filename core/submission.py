from typing import Optional

from core.errors import SubmissionValidationError
from core.pricing import PriceFields
from core.stack_state import StackState, selected_ids
from models.stacked_deal import StackedDeal, StackPayload

MIN_STEPS = 2


def validate(state: StackState, description: Optional[str]):
    if len(state.selected) < MIN_STEPS:
        raise SubmissionValidationError("Select at least two deals to create a stacked deal.")
    ids = selected_ids(state)
    if len(set(ids)) != len(ids):
        raise SubmissionValidationError("Duplicate deal ids are not allowed in a stacked deal.")
    if not description or not description.strip():
        raise SubmissionValidationError("Please enter a description for the stacked deal.")


def build_payload(
    product_id: int,
    state: StackState,
    fields: PriceFields,
    description: str,
    existing: Optional[StackedDeal] = None,
) -> StackPayload:
    """
    Validate the stack and turn it into a request body.

    When ``existing`` is given the payload targets that stack (edit mode).
    """
    validate(state, description)
    return StackPayload(
        product_id=product_id,
        price=fields.price or 0,
        discount_percent=fields.discount_percent or 0,
        additional_details=description.strip(),
        deal_ids=selected_ids(state),
        deal_id=existing.deal_id if existing else None,
        deal_product_id=existing.deal_product_id if existing else None,
    )
