import pytest

from core import stack_state
from core.pricing import PriceFields, clamp_discount, derive_quote, override_price, recompute
from core.stack_state import StackState


def test_chain_compounds_discounts_after_first_price(deal_factory):
    deals = [
        deal_factory(1, price=100, discount=0),
        deal_factory(2, price=999, discount=20),
        deal_factory(3, price=5, discount=10),
    ]

    quote = derive_quote(deals)

    assert quote.final_price == 72.00
    assert quote.discount_percent == 30.00


def test_order_matters_for_price(deal_factory):
    a = deal_factory(1, price=100, discount=10)
    b = deal_factory(2, price=80, discount=20)

    assert derive_quote([a, b]).final_price == 80.00
    assert derive_quote([b, a]).final_price == 72.00


def test_first_step_discount_is_not_applied_to_its_price(deal_factory):
    quote = derive_quote([deal_factory(1, price=50, discount=25)])

    assert quote.final_price == 50.00
    assert quote.discount_percent == 25.00


def test_aggregate_discount_is_capped(deal_factory):
    deals = [deal_factory(i, price=10, discount=60) for i in range(1, 3)]

    quote = derive_quote(deals)

    assert quote.discount_percent == 100.00
    assert quote.final_price == 4.00


def test_rounding_to_cents(deal_factory):
    quote = derive_quote([deal_factory(1, price=19.99), deal_factory(2, discount=33.333)])

    assert quote.final_price == 13.33
    assert quote.discount_percent == 33.33


def test_empty_selection_blanks_fields():
    fields = PriceFields(price=72.0, discount_percent=30.0)

    assert derive_quote([]) is None
    assert recompute(fields, []) == PriceFields()


def test_empty_selection_keeps_overridden_price():
    fields = PriceFields(price=60.0, discount_percent=30.0, manual_override=True)

    assert recompute(fields, []) == fields


def test_override_suppresses_price_but_not_discount(deal_factory):
    a = deal_factory(1, price=100)
    b = deal_factory(2, discount=20)
    c = deal_factory(3, discount=10)

    fields = recompute(PriceFields(), [a, b])
    assert fields.price == 80.0

    fields = override_price(fields, "65.50")
    assert fields.manual_override

    fields = recompute(fields, [a, b, c])
    assert fields.price == 65.5
    assert fields.discount_percent == 30.0

    fields = recompute(fields, [c, b, a])
    assert fields.price == 65.5


def test_removing_last_step_resets_fields_and_lock(deal_factory):
    deal = deal_factory(1, price=100, store_id=4)
    state = stack_state.toggle(StackState(), deal)
    fields = recompute(PriceFields(), state.selected)
    assert fields.price == 100.0

    state = stack_state.toggle(state, deal)
    fields = recompute(fields, state.selected)

    assert fields.price is None
    assert fields.discount_percent is None
    assert stack_state.select_first(state, deal_factory(2, store_id=8)).store_lock == 8


@pytest.mark.parametrize(
    "typed, expected",
    [("15", 15.0), ("150", 100.0), ("-4", 0.0), ("", None), ("abc", None), (12.5, 12.5)],
)
def test_clamp_discount(typed, expected):
    assert clamp_discount(typed) == expected


@pytest.mark.parametrize("typed", ["inf", "-Infinity", "nan", float("inf")])
def test_non_finite_amounts_are_blank(typed):
    assert clamp_discount(typed) is None

    fields = override_price(PriceFields(price=50.0), typed)
    assert fields.price is None
    assert fields.manual_override
