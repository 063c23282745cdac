# Overview: Pytest coverage for the purchase order lifecycle, delivery effects and line editing.

"""
Purchase Order Workflow Tests

Covers:
1. Totals: sum(line totals) + shipping + fees - discount, kept current on every change
2. Delivery effects: stock in, purchase price, selling price, one history row per line
3. New-product lines become products on delivery
4. Idempotence: re-delivering never applies effects twice
5. Failure atomicity: a missing product rolls back the whole delivery
6. Line editing and proration while ORDERED
"""

from decimal import Decimal

import pytest

from nimble.errors import NotFoundError, OrderStateError, ProrationError, ValidationError
from nimble.models import (
    PRICE_TYPE_PURCHASE,
    STATUS_DELIVERED,
    STATUS_ORDERED,
    PriceHistory,
    Product,
    PurchaseOrder,
)
from nimble.services import purchase_order_service as pos


def purchase_history(db_session, product_id=None):
    query = db_session.query(PriceHistory).filter_by(type=PRICE_TYPE_PURCHASE)
    if product_id is not None:
        query = query.filter_by(product_id=product_id)
    return query.all()


@pytest.fixture
def open_order(db_session, supplier, product, product_b):
    """ORDERED: 5 laptops @ 500 and 10 keyboards @ 20, shipping 50."""
    return pos.create_purchase_order(
        supplier_id=supplier.id,
        shipping_cost="50",
        items=[
            {"product_id": product.id, "quantity": 5, "unit_price": "500"},
            {"product_id": product_b.id, "quantity": 10, "unit_price": "20"},
        ],
    )


class TestCreate:
    def test_created_ordered_has_no_effects(self, db_session, open_order, product, product_b):
        assert open_order.status == STATUS_ORDERED
        assert open_order.subtotal == Decimal("2700")
        assert open_order.total == Decimal("2750")
        assert open_order.delivered_at is None

        assert product.stock == 15
        assert product_b.stock == 40
        assert purchase_history(db_session) == []

    def test_total_includes_fees_and_discount(self, db_session, supplier, product):
        order = pos.create_purchase_order(
            supplier_id=supplier.id,
            shipping_cost=Decimal("25.50"),
            additional_fees=Decimal("4.50"),
            discount=Decimal("10"),
            items=[{"product_id": product.id, "quantity": 2, "unit_price": "99.99"}],
        )
        assert order.total == Decimal("219.98")

    def test_unit_price_defaults_to_last_purchase_price(self, db_session, supplier, product):
        order = pos.create_purchase_order(
            supplier_id=supplier.id,
            items=[{"product_id": product.id, "quantity": 2}],
        )
        assert order.items[0].unit_price == Decimal("500")
        assert order.items[0].line_total == Decimal("1000")

    def test_supplier_required(self, db_session, product):
        with pytest.raises(ValidationError):
            pos.create_purchase_order(
                supplier_id=None,
                items=[{"product_id": product.id, "quantity": 1}],
            )

    def test_unknown_supplier(self, db_session, product):
        with pytest.raises(NotFoundError):
            pos.create_purchase_order(
                supplier_id=424242,
                items=[{"product_id": product.id, "quantity": 1}],
            )

    @pytest.mark.parametrize("items", [None, [], "not-a-list"])
    def test_items_required(self, db_session, supplier, items):
        with pytest.raises(ValidationError):
            pos.create_purchase_order(supplier_id=supplier.id, items=items)
        assert db_session.query(PurchaseOrder).count() == 0

    @pytest.mark.parametrize("item", [
        {"quantity": 1, "unit_price": "10"},
        {"product_id": 1, "quantity": 0},
        {"product_id": 1, "quantity": -3},
        {"product_id": 1, "quantity": 1, "unit_price": "-1"},
        {"is_new_product": True, "quantity": 1, "unit_price": "10"},
        {"is_new_product": True, "product_name": "Hub USB", "quantity": 1},
    ])
    def test_invalid_items(self, db_session, supplier, product, item):
        if item.get("product_id") == 1:
            item = dict(item, product_id=product.id)
        with pytest.raises(ValidationError):
            pos.create_purchase_order(supplier_id=supplier.id, items=[item])

    def test_unknown_product_rolls_back(self, db_session, supplier, product):
        with pytest.raises(NotFoundError):
            pos.create_purchase_order(
                supplier_id=supplier.id,
                items=[
                    {"product_id": product.id, "quantity": 1},
                    {"product_id": 424242, "quantity": 1},
                ],
            )
        assert db_session.query(PurchaseOrder).count() == 0

    def test_invalid_status(self, db_session, supplier, product):
        with pytest.raises(ValidationError):
            pos.create_purchase_order(
                supplier_id=supplier.id,
                status="CANCELLED",
                items=[{"product_id": product.id, "quantity": 1}],
            )


class TestDelivery:
    def test_created_delivered_applies_effects(self, db_session, supplier, product):
        order = pos.create_purchase_order(
            supplier_id=supplier.id,
            status="DELIVERED",
            items=[{"product_id": product.id, "quantity": 5, "unit_price": "500"}],
        )

        assert order.status == STATUS_DELIVERED
        assert order.delivered_at is not None
        assert product.stock == 20

        entries = purchase_history(db_session, product.id)
        assert len(entries) == 1
        assert entries[0].price == Decimal("500")
        assert entries[0].source_type == "purchase_order"
        assert entries[0].source_id == order.id

    def test_deliver_updates_stock_and_prices(self, db_session, open_order, product, product_b):
        pos.deliver_purchase_order(open_order.id)

        assert product.stock == 20
        assert product_b.stock == 50
        assert product.last_purchase_price == Decimal("500")
        assert product_b.last_purchase_price == Decimal("20")
        # no suggested price on the lines: selling prices untouched
        assert product.selling_price == Decimal("700")
        assert product_b.selling_price == Decimal("42")

        assert len(purchase_history(db_session, product.id)) == 1
        assert len(purchase_history(db_session, product_b.id)) == 1

    def test_suggested_price_overwrites_selling_price(self, db_session, supplier, product):
        pos.create_purchase_order(
            supplier_id=supplier.id,
            status="DELIVERED",
            items=[{
                "product_id": product.id,
                "quantity": 1,
                "unit_price": "510",
                "suggested_selling_price": "714",
            }],
        )
        assert product.selling_price == Decimal("714")
        assert product.last_purchase_price == Decimal("510")

    def test_new_product_line_creates_product(self, db_session, supplier, warehouse, category):
        order = pos.create_purchase_order(
            supplier_id=supplier.id,
            items=[{
                "is_new_product": True,
                "product_name": "Mouse Óptico Dell",
                "warehouse_id": warehouse.id,
                "category_id": category.id,
                "quantity": 50,
                "unit_price": "15",
            }],
        )
        assert order.items[0].product_id is None
        assert db_session.query(Product).count() == 0

        pos.deliver_purchase_order(order.id)

        created = db_session.query(Product).filter_by(name="Mouse Óptico Dell").one()
        assert created.stock == 50
        assert created.last_purchase_price == Decimal("15")
        assert created.selling_price == Decimal("21")
        assert created.warehouse_id == warehouse.id
        assert created.category_id == category.id
        assert order.items[0].product_id == created.id
        assert len(purchase_history(db_session, created.id)) == 1

    def test_new_product_line_uses_suggested_price(self, db_session, supplier):
        pos.create_purchase_order(
            supplier_id=supplier.id,
            status="DELIVERED",
            items=[{
                "is_new_product": True,
                "product_name": "Webcam",
                "quantity": 3,
                "unit_price": "40",
                "suggested_selling_price": "60",
            }],
        )
        created = db_session.query(Product).filter_by(name="Webcam").one()
        assert created.selling_price == Decimal("60")

    def test_explicit_zero_suggested_price_is_applied(self, db_session, supplier, product):
        pos.create_purchase_order(
            supplier_id=supplier.id,
            status="DELIVERED",
            items=[
                {"product_id": product.id, "quantity": 1, "unit_price": "500", "suggested_selling_price": "0"},
                {"is_new_product": True, "product_name": "Muestra gratis", "quantity": 1,
                 "unit_price": "5", "suggested_selling_price": "0"},
            ],
        )

        assert product.selling_price == Decimal("0")
        sample = db_session.query(Product).filter_by(name="Muestra gratis").one()
        assert sample.selling_price == Decimal("0")

    def test_redelivery_is_a_noop(self, db_session, open_order, product):
        pos.deliver_purchase_order(open_order.id)
        pos.deliver_purchase_order(open_order.id)
        pos.update_purchase_order(open_order.id, status="DELIVERED")

        assert product.stock == 20
        assert len(purchase_history(db_session, product.id)) == 1

    def test_update_to_delivered_applies_effects(self, db_session, open_order, product):
        pos.update_purchase_order(open_order.id, status="delivered")

        assert open_order.status == STATUS_DELIVERED
        assert product.stock == 20

    def test_missing_product_rolls_back_whole_delivery(self, db_session, open_order, product, product_b):
        # product_b vanishes between ordering and delivery
        db_session.execute(Product.__table__.delete().where(Product.id == product_b.id))
        db_session.commit()

        with pytest.raises(NotFoundError):
            pos.deliver_purchase_order(open_order.id)

        assert product.stock == 15
        assert open_order.status == STATUS_ORDERED
        assert purchase_history(db_session) == []

    def test_revert_to_ordered_rejected(self, db_session, open_order):
        pos.deliver_purchase_order(open_order.id)
        with pytest.raises(OrderStateError):
            pos.update_purchase_order(open_order.id, status="ORDERED")

    def test_delivered_items_frozen(self, db_session, open_order, product, product_b):
        pos.deliver_purchase_order(open_order.id)

        with pytest.raises(OrderStateError):
            pos.update_purchase_order(
                open_order.id,
                items=[{"product_id": product.id, "quantity": 6, "unit_price": "500"}],
            )

        # identical resubmission is accepted and changes nothing
        pos.update_purchase_order(
            open_order.id,
            status="DELIVERED",
            items=[
                {"product_id": product.id, "quantity": 5, "unit_price": "500"},
                {"product_id": product_b.id, "quantity": 10, "unit_price": "20"},
            ],
        )
        assert product.stock == 20
        assert product_b.stock == 50

    def test_delivered_header_fields_still_editable(self, db_session, open_order):
        pos.deliver_purchase_order(open_order.id)
        pos.update_purchase_order(open_order.id, notes="Factura A-0001", shipping_cost="60")

        assert open_order.notes == "Factura A-0001"
        assert open_order.total == Decimal("2760")


class TestUpdate:
    def test_replace_items_recomputes_total(self, db_session, open_order, product):
        pos.update_purchase_order(
            open_order.id,
            items=[{"product_id": product.id, "quantity": 2, "unit_price": "480"}],
        )

        assert len(open_order.items) == 1
        assert open_order.total == Decimal("1010")

    def test_cost_fields_recompute_total(self, db_session, open_order):
        pos.update_purchase_order(open_order.id, shipping_cost="0", discount="100")
        assert open_order.total == Decimal("2600")

    def test_missing_order(self, db_session):
        with pytest.raises(NotFoundError):
            pos.update_purchase_order(424242, notes="x")


class TestListAndDelete:
    def test_list_filters_by_status(self, db_session, open_order, supplier, product):
        pos.create_purchase_order(
            supplier_id=supplier.id,
            status="DELIVERED",
            items=[{"product_id": product.id, "quantity": 1}],
        )

        ordered, total = pos.list_purchase_orders(status="ORDERED")
        assert total == 1
        assert ordered[0].id == open_order.id

        everything, total = pos.list_purchase_orders()
        assert total == 2

    def test_delete_ordered(self, db_session, open_order):
        assert pos.delete_purchase_order(open_order.id) is True
        assert db_session.query(PurchaseOrder).count() == 0
        assert pos.delete_purchase_order(open_order.id) is False

    def test_delete_delivered_refused(self, db_session, open_order):
        pos.deliver_purchase_order(open_order.id)
        with pytest.raises(OrderStateError):
            pos.delete_purchase_order(open_order.id)


class TestLineEditing:
    def test_add_merges_same_product(self, db_session, open_order, product):
        pos.add_purchase_order_item(
            open_order.id,
            item={"product_id": product.id, "quantity": 3, "unit_price": "450"},
        )

        assert len(open_order.items) == 2
        line = open_order.items[0]
        assert line.quantity == 8
        assert line.unit_price == Decimal("500")
        assert line.line_total == Decimal("4000")
        assert open_order.total == Decimal("4250")

    def test_add_new_line(self, db_session, supplier, product, product_b):
        order = pos.create_purchase_order(
            supplier_id=supplier.id,
            items=[{"product_id": product.id, "quantity": 1, "unit_price": "500"}],
        )
        added = pos.add_purchase_order_item(order.id, item={"product_id": product_b.id, "quantity": 4})

        assert added.unit_price == Decimal("30")
        assert [line.position for line in order.items] == [0, 1]
        assert order.total == Decimal("620")

    def test_update_line(self, db_session, open_order):
        line = open_order.items[1]
        pos.update_purchase_order_item(line.id, quantity=20, unit_price="19.50")

        assert line.line_total == Decimal("390")
        assert open_order.total == Decimal("2940")

    def test_remove_line(self, db_session, open_order, product_b):
        line_id = open_order.items[0].id
        order = pos.remove_purchase_order_item(line_id)

        assert [line.product_id for line in order.items] == [product_b.id]
        assert order.items[0].position == 0
        assert order.total == Decimal("250")

    def test_missing_line(self, db_session):
        with pytest.raises(NotFoundError):
            pos.update_purchase_order_item(424242, quantity=1)
        with pytest.raises(NotFoundError):
            pos.remove_purchase_order_item(424242)

    def test_lines_frozen_after_delivery(self, db_session, open_order, product):
        pos.deliver_purchase_order(open_order.id)
        line_id = open_order.items[0].id

        with pytest.raises(OrderStateError):
            pos.add_purchase_order_item(open_order.id, item={"product_id": product.id, "quantity": 1})
        with pytest.raises(OrderStateError):
            pos.update_purchase_order_item(line_id, quantity=1)
        with pytest.raises(OrderStateError):
            pos.remove_purchase_order_item(line_id)

    def test_edit_clears_proration(self, db_session, open_order):
        pos.prorate_purchase_order(open_order.id)
        assert open_order.items[0].suggested_selling_price == Decimal("713")

        pos.update_purchase_order_item(open_order.items[1].id, quantity=11)

        assert all(line.prorated_unit_cost is None for line in open_order.items)
        assert all(line.suggested_selling_price is None for line in open_order.items)

    def test_cost_change_clears_proration(self, db_session, open_order, product):
        pos.prorate_purchase_order(open_order.id)
        assert open_order.items[0].suggested_selling_price == Decimal("713")

        pos.update_purchase_order(open_order.id, shipping_cost="0")

        assert all(line.prorated_unit_cost is None for line in open_order.items)
        assert all(line.suggested_selling_price is None for line in open_order.items)

        pos.deliver_purchase_order(open_order.id)
        # no proration left, so delivery keeps the existing selling price
        assert product.selling_price == Decimal("700")

    def test_unchanged_costs_keep_proration(self, db_session, open_order):
        pos.prorate_purchase_order(open_order.id)

        pos.update_purchase_order(open_order.id, shipping_cost="50", notes="Confirmado por teléfono")

        assert open_order.items[0].suggested_selling_price == Decimal("713")


class TestProration:
    def test_prorate_persists_line_values(self, db_session, open_order):
        result = pos.prorate_purchase_order(open_order.id)

        assert result.applied is True
        laptop, keyboard = open_order.items
        assert laptop.prorated_unit_cost == Decimal("509.2593")
        assert laptop.suggested_selling_price == Decimal("713")
        assert keyboard.prorated_unit_cost == Decimal("20.3704")
        assert keyboard.suggested_selling_price == Decimal("29")

    def test_delivery_applies_prorated_suggested_prices(self, db_session, open_order, product, product_b):
        pos.prorate_purchase_order(open_order.id)
        pos.deliver_purchase_order(open_order.id)

        assert product.selling_price == Decimal("713")
        assert product_b.selling_price == Decimal("29")
        # last purchase price stays the invoice price, not the prorated cost
        assert product.last_purchase_price == Decimal("500")

    def test_prorate_without_costs_is_a_noop(self, db_session, supplier, product):
        order = pos.create_purchase_order(
            supplier_id=supplier.id,
            items=[{"product_id": product.id, "quantity": 1}],
        )
        result = pos.prorate_purchase_order(order.id)

        assert result.applied is False
        assert order.items[0].prorated_unit_cost is None

    def test_prorate_zero_subtotal(self, db_session, supplier, product):
        order = pos.create_purchase_order(
            supplier_id=supplier.id,
            shipping_cost="10",
            items=[{"product_id": product.id, "quantity": 1, "unit_price": "0"}],
        )
        with pytest.raises(ProrationError):
            pos.prorate_purchase_order(order.id)

    def test_prorate_delivered_refused(self, db_session, open_order):
        pos.deliver_purchase_order(open_order.id)
        with pytest.raises(OrderStateError):
            pos.prorate_purchase_order(open_order.id)

    def test_prorate_draft_writes_nothing(self, db_session, product, product_b):
        items, result = pos.prorate_draft(
            shipping_cost="50",
            items=[
                {"product_id": product.id, "quantity": 5, "unit_price": "500"},
                {"product_id": product_b.id, "quantity": 10, "unit_price": "20"},
            ],
        )

        assert [line.suggested_selling_price for line in items] == [Decimal("713"), Decimal("29")]
        assert result.additional_costs == Decimal("50")
        assert db_session.query(PurchaseOrder).count() == 0
