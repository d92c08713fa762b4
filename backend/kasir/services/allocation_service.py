# Overview: Proportional discount/tax/profit allocation across sale lines.

"""
Allocation of transaction-level discount and tax to line items.

Each line receives a share of the discount and the tax equal to its share of
the pre-discount subtotal. Shares are kept as exact fractions so the per-line
amounts always add back up to the transaction totals; rounding happens only
where a caller stores or displays a single line.

Percent discounts and taxes are resolved to nominal amounts first (floored to
the minor unit). Tax is charged on the subtotal after discount.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Iterable
import math

from ..errors import ValidationError


TYPE_NOMINAL = "nominal"
TYPE_PERCENT = "percent"


@dataclass(frozen=True)
class LineInput:
    unit_price: int
    buy_price: int
    qty: int
    key: object = None


@dataclass(frozen=True)
class AllocatedLine:
    key: object
    qty: int
    unit_price: int
    buy_price: int
    line_sell: int
    ratio: Fraction
    discount: Fraction
    tax: Fraction
    net_sell: Fraction
    buy_total: int
    profit: Fraction

    @property
    def profit_floor(self) -> int:
        return math.floor(self.profit)


@dataclass(frozen=True)
class AllocationTotals:
    subtotal: int
    discount: Fraction
    tax: Fraction
    net_sell: Fraction
    buy_total: int
    profit: Fraction


@dataclass(frozen=True)
class Allocation:
    lines: list[AllocatedLine]
    totals: AllocationTotals


@dataclass(frozen=True)
class ResolvedAmounts:
    subtotal: int
    discount: int
    tax: int

    @property
    def grand_total(self) -> int:
        return self.subtotal - self.discount + self.tax


def resolve_nominal(kind: str, value: int, base: int) -> int:
    """Nominal amount for a (type, value) pair; percent is floored."""
    if value < 0:
        raise ValidationError("Discount and tax values may not be negative")
    if kind == TYPE_PERCENT:
        return (base * value) // 100
    if kind == TYPE_NOMINAL:
        return value
    raise ValidationError(f"Unknown amount type: {kind}")


def resolve_amounts(
    subtotal: int,
    *,
    discount_type: str,
    discount_value: int,
    tax_type: str,
    tax_value: int,
) -> ResolvedAmounts:
    discount = resolve_nominal(discount_type, discount_value, subtotal)
    if discount > subtotal:
        raise ValidationError(
            "Discount exceeds subtotal",
            details={"discount": discount, "subtotal": subtotal},
        )
    tax = resolve_nominal(tax_type, tax_value, max(subtotal - discount, 0))
    return ResolvedAmounts(subtotal=subtotal, discount=discount, tax=tax)


def allocate(lines: Iterable[LineInput], discount: int, tax: int) -> Allocation:
    """
    Split ``discount`` and ``tax`` over ``lines`` by sell-total share.

    A zero subtotal gives every line a zero ratio, so nothing is allocated and
    each line's profit is its negated cost.
    """
    lines = list(lines)
    normalized = [(line, max(int(line.qty), 1)) for line in lines]
    subtotal = sum(line.unit_price * qty for line, qty in normalized)

    allocated = []
    for line, qty in normalized:
        line_sell = line.unit_price * qty
        ratio = Fraction(line_sell, subtotal) if subtotal > 0 else Fraction(0)
        line_discount = discount * ratio
        line_tax = tax * ratio
        net_sell = line_sell - line_discount
        buy_total = line.buy_price * qty
        allocated.append(AllocatedLine(
            key=line.key,
            qty=qty,
            unit_price=line.unit_price,
            buy_price=line.buy_price,
            line_sell=line_sell,
            ratio=ratio,
            discount=line_discount,
            tax=line_tax,
            net_sell=net_sell,
            buy_total=buy_total,
            profit=net_sell - buy_total,
        ))

    totals = AllocationTotals(
        subtotal=subtotal,
        discount=sum((line.discount for line in allocated), Fraction(0)),
        tax=sum((line.tax for line in allocated), Fraction(0)),
        net_sell=sum((line.net_sell for line in allocated), Fraction(0)),
        buy_total=sum(line.buy_total for line in allocated),
        profit=sum((line.profit for line in allocated), Fraction(0)),
    )
    return Allocation(lines=allocated, totals=totals)


def display_amount(value: Fraction | int) -> int:
    """Round half up to a whole minor unit for reports."""
    return math.floor(Fraction(value) + Fraction(1, 2))
