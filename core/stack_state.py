"""
Selection state for a stacked deal being built.

Every operation is a pure function taking a StackState and returning a new
one. Rejected operations raise StackRuleError and the caller keeps the state
it already had.
"""

from typing import Callable, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from config.logger import logger
from core.errors import StackRuleError
from models.deal import Deal

MISSING_STORE = "This deal is missing a store and cannot be stacked."
MIXED_STORES = "All stacked deals must be from the same store."
SECOND_DIRECT = "Only one Direct deal can be included in a stacked deal."


class StackState(BaseModel):
    model_config = ConfigDict(frozen=True)

    selected: Tuple[Deal, ...] = ()
    # Store fixed by the first selection; None only while the stack is empty
    store_lock: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.selected

    def __len__(self) -> int:
        return len(self.selected)

    def __contains__(self, deal_id) -> bool:
        return any(d.deal_id == deal_id for d in self.selected)


def clear() -> StackState:
    return StackState()


def selected_ids(state: StackState) -> List[int]:
    return [d.deal_id for d in state.selected]


def has_direct(state: StackState) -> bool:
    return any(d.is_direct for d in state.selected)


def select_first(state: StackState, deal: Deal) -> StackState:
    if not state.is_empty:
        raise StackRuleError("The stack already has a first deal.")
    if not deal.has_store:
        raise StackRuleError(MISSING_STORE)
    return StackState(selected=(deal,), store_lock=deal.store_id)


def remove(state: StackState, deal_id: int) -> StackState:
    remaining = tuple(d for d in state.selected if d.deal_id != deal_id)
    if len(remaining) == len(state.selected):
        return state
    if not remaining:
        return StackState()
    return state.model_copy(update={"selected": remaining})


def toggle(state: StackState, deal: Deal) -> StackState:
    """Remove ``deal`` if it is in the stack, otherwise append it when the stacking rules allow."""
    if deal.deal_id in state:
        return remove(state, deal.deal_id)

    if state.is_empty:
        return select_first(state, deal)

    if deal.store_id != state.store_lock:
        raise StackRuleError(MIXED_STORES)
    if not deal.has_store:
        raise StackRuleError(MISSING_STORE)
    if deal.is_direct and has_direct(state):
        raise StackRuleError(SECOND_DIRECT)

    return state.model_copy(update={"selected": state.selected + (deal,)})


def reorder(state: StackState, from_index: int, to_index: int) -> StackState:
    """Move one step to a new position; the other steps keep their relative order."""
    size = len(state.selected)
    if not (0 <= from_index < size) or not (0 <= to_index < size):
        raise StackRuleError(f"Cannot move step {from_index + 1} to position {to_index + 1}.")
    if from_index == to_index:
        return state

    steps = list(state.selected)
    moved = steps.pop(from_index)
    steps.insert(to_index, moved)
    return state.model_copy(update={"selected": tuple(steps)})


def available_deals(state: StackState, candidates: Iterable[Deal]) -> List[Deal]:
    """
    Candidates that could still be added: not already selected, at the locked
    store (when there is one), and not a second Direct deal.
    """
    direct_taken = has_direct(state)
    result = []
    for deal in candidates:
        if deal.deal_id in state:
            continue
        if state.store_lock is not None and deal.store_id != state.store_lock:
            continue
        if direct_taken and deal.is_direct:
            continue
        result.append(deal)
    return result


def hydrate(step_ids: Iterable[int], lookup: Callable[[int], Optional[Deal]]) -> StackState:
    """
    Rebuild the state of a saved stack from its ordered step ids.

    Steps are re-added one by one through ``toggle``, so the store lock comes
    from the first step that can start a stack. Ids that ``lookup`` cannot
    resolve and steps the stacking rules reject are dropped.
    """
    state = StackState()
    for deal_id in step_ids:
        if deal_id in state:
            continue
        deal = lookup(deal_id)
        if deal is None:
            continue
        try:
            state = toggle(state, deal)
        except StackRuleError as e:
            logger.warning(f"⚠️ Skipping step {deal_id} of saved stack: {e.message}")
    return state
