import pytest

from qrdine.schemas.orders import CartItem
from qrdine.services.pricing import unit_price, line_total, order_totals, PricingError


def _line(item, qty=1, size=None, extras=(), line_id="l1"):
    return CartItem(id=line_id, menu_item=item, quantity=qty,
                    selected_size=size, selected_extras=list(extras))


def test_unit_price_adds_size_and_extras(burger):
    large = burger.sizes[1]
    assert unit_price(burger) == 550
    assert unit_price(burger, large) == 700
    assert unit_price(burger, large, burger.extras) == 830


def test_line_total_matches_worked_example(burger):
    line = _line(burger, qty=2, size=burger.sizes[0], extras=burger.extras)
    assert line_total(line) == 1360


def test_totals_use_sixteen_percent_rounded_half_up(burger):
    totals = order_totals([_line(burger, qty=2, size=burger.sizes[0], extras=burger.extras)])
    assert totals == {"subtotal": 1360, "tax": 218, "total": 1578}
    assert totals["total"] == totals["subtotal"] + totals["tax"]


def test_tax_half_unit_rounds_up(make_item):
    # 21.875 * 0.16 = 3.5
    item = make_item(price=21.875)
    totals = order_totals([_line(item)])
    assert totals["tax"] == 4
    assert totals["total"] == 25.88


def test_empty_order_is_all_zero():
    assert order_totals([]) == {"subtotal": 0, "tax": 0, "total": 0}


def test_negative_size_modifier_below_zero_is_rejected(make_item):
    item = make_item(price=100, sizes=[{"id": "kids", "name": "Kids", "price_modifier": -150}])
    with pytest.raises(PricingError):
        line_total(_line(item, size=item.sizes[0]))
    with pytest.raises(PricingError):
        order_totals([_line(item, size=item.sizes[0])])


def test_negative_modifier_that_stays_positive_is_fine(make_item):
    item = make_item(price=500, sizes=[{"id": "small", "name": "Small", "price_modifier": -100}])
    assert line_total(_line(item, qty=3, size=item.sizes[0])) == 1200


def test_tax_rate_override(burger):
    assert order_totals([_line(burger)], tax_rate=0.10) == {"subtotal": 550, "tax": 55, "total": 605}
