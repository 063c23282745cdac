# Overview: Pytest coverage for cost proration across purchase order lines.

"""
Proration Tests

The calculator is pure: these tests build transient PurchaseOrderItem rows
and never touch the database.
"""

from decimal import Decimal

import pytest

from nimble.errors import ProrationError, ValidationError
from nimble.models import PurchaseOrder, PurchaseOrderItem
from nimble.services.proration_service import (
    additional_costs_for,
    apply_proration,
    clear_proration,
    prorate_items,
    suggested_price,
)


def make_item(quantity, unit_price):
    item = PurchaseOrderItem(
        product_name="line",
        quantity=quantity,
        unit_price=Decimal(unit_price),
    )
    item.recalculate_line_total()
    return item


@pytest.fixture
def laptop_and_keyboard():
    # line totals 2500 and 200
    return [make_item(5, "500"), make_item(10, "20")]


class TestProrateItems:
    def test_shares_follow_line_totals(self, laptop_and_keyboard):
        result = prorate_items(laptop_and_keyboard, Decimal("50"))

        assert result.applied is True
        assert result.subtotal == Decimal("2700")
        amounts = [line.prorated_amount.quantize(Decimal("0.01")) for line in result.lines]
        assert amounts == [Decimal("46.30"), Decimal("3.70")]

    def test_prorated_amounts_sum_to_additional_costs(self):
        items = [make_item(3, "19.99"), make_item(7, "4.35"), make_item(1, "120.00")]
        result = prorate_items(items, Decimal("33.33"))

        total = sum(line.prorated_amount for line in result.lines)
        assert abs(total - Decimal("33.33")) < Decimal("0.0001")

    def test_unit_cost_and_suggested_price(self, laptop_and_keyboard):
        result = prorate_items(laptop_and_keyboard, Decimal("50"))

        laptop, keyboard = result.lines
        assert laptop.prorated_unit_cost.quantize(Decimal("0.0001")) == Decimal("509.2593")
        assert laptop.suggested_selling_price == Decimal("713")
        assert keyboard.prorated_unit_cost.quantize(Decimal("0.0001")) == Decimal("20.3704")
        assert keyboard.suggested_selling_price == Decimal("29")

    def test_zero_costs_is_a_noop(self, laptop_and_keyboard):
        result = prorate_items(laptop_and_keyboard, Decimal("0"))

        assert result.applied is False
        assert result.lines == ()
        assert "No additional costs" in result.message

        apply_proration(laptop_and_keyboard, result)
        assert all(item.prorated_unit_cost is None for item in laptop_and_keyboard)
        assert all(item.suggested_selling_price is None for item in laptop_and_keyboard)

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError):
            prorate_items([], Decimal("10"))

    def test_zero_subtotal_rejected(self):
        with pytest.raises(ProrationError):
            prorate_items([make_item(2, "0")], Decimal("10"))

    def test_zero_subtotal_with_zero_costs_is_noop(self):
        result = prorate_items([make_item(2, "0")], Decimal("0"))
        assert result.applied is False

    def test_is_idempotent(self, laptop_and_keyboard):
        first = prorate_items(laptop_and_keyboard, Decimal("50"))
        apply_proration(laptop_and_keyboard, first)
        second = prorate_items(laptop_and_keyboard, Decimal("50"))

        assert first == second

    def test_negative_costs_lower_unit_cost(self, laptop_and_keyboard):
        result = prorate_items(laptop_and_keyboard, Decimal("-27"))

        assert result.applied is True
        assert all(line.prorated_amount < 0 for line in result.lines)
        assert result.lines[0].prorated_unit_cost < Decimal("500")


class TestApplyProration:
    def test_writes_values_onto_items(self, laptop_and_keyboard):
        result = prorate_items(laptop_and_keyboard, Decimal("50"))
        apply_proration(laptop_and_keyboard, result)

        laptop, keyboard = laptop_and_keyboard
        assert laptop.prorated_unit_cost == Decimal("509.2593")
        assert laptop.suggested_selling_price == Decimal("713")
        assert keyboard.prorated_unit_cost == Decimal("20.3704")
        assert keyboard.suggested_selling_price == Decimal("29")

    def test_clear_proration(self, laptop_and_keyboard):
        apply_proration(laptop_and_keyboard, prorate_items(laptop_and_keyboard, Decimal("50")))
        clear_proration(laptop_and_keyboard)

        assert all(item.prorated_unit_cost is None for item in laptop_and_keyboard)
        assert all(item.suggested_selling_price is None for item in laptop_and_keyboard)


def test_suggested_price_rounds_half_up():
    assert suggested_price(Decimal("2.5")) == Decimal("4")  # 3.50 -> 4
    assert suggested_price(Decimal("500")) == Decimal("700")
    assert suggested_price(Decimal("10.35")) == Decimal("14")  # 14.49 -> 14


def test_additional_costs_for_order():
    order = PurchaseOrder(
        shipping_cost=Decimal("50"),
        additional_fees=Decimal("12.50"),
        discount=Decimal("20"),
    )
    assert additional_costs_for(order) == Decimal("42.50")


def test_result_to_dict_is_json_friendly(laptop_and_keyboard):
    data = prorate_items(laptop_and_keyboard, Decimal("50")).to_dict()

    assert data["applied"] is True
    assert data["additional_costs"] == "50"
    assert [line["prorated_amount"] for line in data["lines"]] == ["46.30", "3.70"]
    assert [line["suggested_selling_price"] for line in data["lines"]] == ["713", "29"]
