from datetime import date, datetime, timedelta, timezone

import pytest

from nimble.services import sales_order_service
from nimble.time_utils import coerce_datetime, parse_iso_datetime, to_utc_z


class TestParse:
    def test_date_only_is_midnight_utc(self):
        assert parse_iso_datetime("2024-03-15") == datetime(2024, 3, 15)

    def test_zulu_and_offsets_become_utc_naive(self):
        assert parse_iso_datetime("2024-03-15T10:30:00Z") == datetime(2024, 3, 15, 10, 30)
        assert parse_iso_datetime("2024-03-15T07:30:00-03:00") == datetime(2024, 3, 15, 10, 30)

    def test_blank_is_none(self):
        assert parse_iso_datetime("  ") is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_iso_datetime("15/03/2024")


class TestCoerce:
    def test_aware_datetime_is_normalized(self):
        aware = datetime(2024, 3, 15, 7, 30, tzinfo=timezone(timedelta(hours=-3)))
        assert coerce_datetime(aware) == datetime(2024, 3, 15, 10, 30)

    def test_date(self):
        assert coerce_datetime(date(2024, 3, 15)) == datetime(2024, 3, 15)

    def test_number_rejected(self):
        with pytest.raises(ValueError):
            coerce_datetime(20240315)


def test_to_utc_z_drops_microseconds():
    assert to_utc_z(datetime(2024, 3, 15, 10, 30, 0, 123456)) == "2024-03-15T10:30:00Z"


def test_order_accepts_date_picker_value(db_session, customer, product):
    order = sales_order_service.create_sales_order(
        customer_id=customer.id,
        ordered_at="2024-03-15",
        items=[{"product_id": product.id, "quantity": 1}],
    )
    assert order.ordered_at == datetime(2024, 3, 15)
