# Overview: Pure proration of order-level costs across purchase order lines.

"""
Proration Calculator

Distributes the order-level extra cost (shipping + fees - discount) across
lines in proportion to each line's share of the subtotal:

    share                   = line_total / subtotal
    prorated_amount         = additional_costs * share
    prorated_unit_cost      = unit_price + prorated_amount / quantity
    suggested_selling_price = round_half_up(prorated_unit_cost * 1.4)

prorate_items() is pure: it reads the current lines and returns a result,
so calling it twice on unchanged input gives the same answer. Writing the
numbers back onto lines is apply_proration()'s job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from ..errors import ProrationError, ValidationError


MARKUP = Decimal("1.4")
WHOLE_UNIT = Decimal("1")
UNIT_COST_PLACES = Decimal("0.0001")


@dataclass(frozen=True)
class ProratedLine:
    index: int
    share: Decimal
    prorated_amount: Decimal
    prorated_unit_cost: Decimal
    suggested_selling_price: Decimal

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "share": str(self.share),
            "prorated_amount": str(self.prorated_amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)),
            "prorated_unit_cost": str(self.prorated_unit_cost.quantize(UNIT_COST_PLACES, rounding=ROUND_HALF_UP)),
            "suggested_selling_price": str(self.suggested_selling_price),
        }


@dataclass(frozen=True)
class ProrationResult:
    applied: bool
    additional_costs: Decimal
    subtotal: Decimal
    message: str
    lines: tuple[ProratedLine, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "applied": self.applied,
            "additional_costs": str(self.additional_costs),
            "subtotal": str(self.subtotal),
            "message": self.message,
            "lines": [line.to_dict() for line in self.lines],
        }


def suggested_price(unit_cost) -> Decimal:
    """40% markup rounded to the nearest whole currency unit (halves round up)."""
    return (Decimal(unit_cost) * MARKUP).quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def additional_costs_for(order) -> Decimal:
    return (
        Decimal(order.shipping_cost or 0)
        + Decimal(order.additional_fees or 0)
        - Decimal(order.discount or 0)
    )


def prorate_items(items: Sequence, additional_costs) -> ProrationResult:
    """
    Prorate additional_costs over items (objects with quantity, unit_price
    and line_total).

    Raises:
        ValidationError: If there are no items
        ProrationError: If costs are non-zero but the subtotal is zero
    """
    if not items:
        raise ValidationError("Add items before prorating costs")

    costs = Decimal(additional_costs)
    subtotal = sum((Decimal(item.line_total) for item in items), Decimal("0"))

    if costs == 0:
        return ProrationResult(
            applied=False,
            additional_costs=costs,
            subtotal=subtotal,
            message="No additional costs to prorate",
        )

    if subtotal == 0:
        raise ProrationError("Cannot prorate costs over a zero-value subtotal")

    lines = []
    for index, item in enumerate(items):
        share = Decimal(item.line_total) / subtotal
        prorated_amount = costs * share
        unit_cost = Decimal(item.unit_price) + prorated_amount / Decimal(item.quantity)
        lines.append(
            ProratedLine(
                index=index,
                share=share,
                prorated_amount=prorated_amount,
                prorated_unit_cost=unit_cost,
                suggested_selling_price=suggested_price(unit_cost),
            )
        )

    return ProrationResult(
        applied=True,
        additional_costs=costs,
        subtotal=subtotal,
        message=f"Prorated {costs} across {len(lines)} items",
        lines=tuple(lines),
    )


def apply_proration(items: Sequence, result: ProrationResult) -> None:
    """Write prorated_unit_cost / suggested_selling_price back onto items."""
    if not result.applied:
        return
    for line in result.lines:
        item = items[line.index]
        item.prorated_unit_cost = line.prorated_unit_cost.quantize(UNIT_COST_PLACES, rounding=ROUND_HALF_UP)
        item.suggested_selling_price = line.suggested_selling_price


def clear_proration(items: Iterable) -> None:
    for item in items:
        item.prorated_unit_cost = None
        item.suggested_selling_price = None
