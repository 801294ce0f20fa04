"""Line-item and order pricing.

All arithmetic runs on ``Decimal`` built from ``str(x)`` so float inputs from
JSON snapshots do not leak binary artifacts into totals. Public helpers hand
back plain floats, the way the rest of the API ships money.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from qrdine.config import settings


class PricingError(ValueError):
    """Price data that cannot produce a valid (non-negative) line total."""


def _d(x) -> Decimal:
    return Decimal(str(x or 0))

def _money(x) -> float:
    return float(Decimal(x).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


def _unit(base_price, size=None, extras: Optional[Iterable] = None) -> Decimal:
    price = _d(base_price)
    if size is not None:
        price += _d(size.price_modifier)
    for e in extras or ():
        price += _d(e.price)
    return price


def unit_price(item, size=None, extras: Optional[Iterable] = None) -> float:
    """base price + size modifier + sum of extras"""
    return _money(_unit(item.price, size, extras))


def _line(line) -> Decimal:
    unit = _unit(line.menu_item.price, line.selected_size, line.selected_extras)
    if unit < 0:
        raise PricingError(
            f"'{line.menu_item.name}' prices below zero with the selected size"
        )
    if line.quantity < 1:
        raise PricingError(f"quantity must be at least 1, got {line.quantity}")
    return unit * line.quantity


def line_total(line) -> float:
    return _money(_line(line))


def order_totals(lines: Iterable, tax_rate: float | None = None) -> dict:
    rate = _d(settings.TAX_RATE if tax_rate is None else tax_rate)
    subtotal = sum((_line(l) for l in lines), Decimal(0))
    tax = (subtotal * rate).quantize(Decimal('1'), rounding=ROUND_HALF_UP)  # nearest currency unit
    return {
        "subtotal": _money(subtotal),
        "tax": _money(tax),
        "total": _money(subtotal + tax),
    }

