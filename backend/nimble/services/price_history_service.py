# Overview: Service-layer operations for the append-only price history log.

"""
Price History Recorder

record_price() always appends; there is no update or upsert. Callers:
- products_service: product creation with a purchase price, purchase
  price edits
- purchase_order_service: one purchase row per delivered line
- sales_order_service: one sale row per sold line
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from ..errors import ValidationError
from ..models import PRICE_TYPES, PriceHistory
from ..time_utils import utcnow
from .entity_store import EntityStore, default_store


def record_price(
    *,
    product_id: int,
    price,
    price_type: str,
    occurred_at: datetime | None = None,
    source_type: str | None = None,
    source_id: int | None = None,
    store: EntityStore | None = None,
) -> PriceHistory:
    """
    Append a price observation.

    Runs inside the caller's transaction when there is one, otherwise in
    its own.

    Raises:
        ValidationError: If price_type is unknown or price is negative
    """
    if price_type not in PRICE_TYPES:
        raise ValidationError(
            f"Invalid price type. Must be one of: {', '.join(sorted(PRICE_TYPES))}"
        )
    price = Decimal(price)
    if price < 0:
        raise ValidationError("price must be >= 0")

    store = store or default_store()
    with store.transaction():
        entry = PriceHistory(
            product_id=product_id,
            price=price,
            type=price_type,
            occurred_at=occurred_at or utcnow(),
            source_type=source_type,
            source_id=source_id,
        )
        store.add(entry)
    return entry


def get_by_product_id(product_id: int, *, store: EntityStore | None = None) -> list[PriceHistory]:
    """All price observations for a product, newest first."""
    store = store or default_store()
    return (
        store.query("price_history")
        .filter(PriceHistory.product_id == product_id)
        .order_by(PriceHistory.occurred_at.desc(), PriceHistory.id.desc())
        .all()
    )


def list_price_history(
    *,
    price_type: str | None = None,
    limit: int = 100,
    offset: int = 0,
    store: EntityStore | None = None,
) -> tuple[list[PriceHistory], int]:
    """
    List price history across products, newest first.

    Returns:
        Tuple of (list of entries, total count)
    """
    store = store or default_store()
    query = store.query("price_history")
    if price_type:
        if price_type not in PRICE_TYPES:
            raise ValidationError(f"Invalid price type: {price_type}")
        query = query.filter(PriceHistory.type == price_type)

    total = query.count()
    entries = (
        query.order_by(PriceHistory.occurred_at.desc(), PriceHistory.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return entries, total
