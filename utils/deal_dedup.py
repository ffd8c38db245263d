"""
Page merging for candidate deals.
Pages can overlap when deals are added while the user scrolls, so every merge
keeps the first occurrence of a deal id.
"""

from typing import Any, Iterable, List

from config.logger import logger
from core.errors import MalformedDealError
from models.deal import Deal


def normalize_deal_list(data: Any) -> list:
    """
    Accept the shapes the deals endpoint has been seen to return.

    Args:
        data: Decoded JSON body (a list, ``{"deals": [...]}``, or an id-keyed object)

    Returns:
        A list of raw records; anything else yields an empty list
    """
    if not data:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if isinstance(data.get("deals"), list):
            return data["deals"]
        return list(data.values())
    return []


def parse_deals(records: Iterable[Any]) -> List[Deal]:
    deals = []
    for raw in records:
        try:
            deals.append(Deal.from_api(raw))
        except MalformedDealError as e:
            logger.warning(f"⚠️ Skipping malformed deal: {e.message}")
    return deals


def merge_unique(existing: List[Deal], batch: Iterable[Deal]) -> List[Deal]:
    """
    Append deals from ``batch`` whose id is not already in ``existing``.

    Returns:
        A new list; ``existing`` is not modified
    """
    seen = {d.deal_id for d in existing}
    merged = list(existing)
    for deal in batch:
        if deal.deal_id not in seen:
            seen.add(deal.deal_id)
            merged.append(deal)
    return merged
