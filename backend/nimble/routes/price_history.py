from flask import Blueprint, request

from ..services import price_history_service


price_history_bp = Blueprint("price_history", __name__, url_prefix="/api/price-history")


@price_history_bp.get("")
def list_price_history_route():
    """
    Price observations across all products, newest first.

    Query parameters:
    - type: purchase | sale
    - limit: Maximum results (default: 100, max 500)
    - offset: Pagination offset (default: 0)
    """
    limit = max(1, min(request.args.get("limit", 100, type=int), 500))
    offset = max(0, request.args.get("offset", 0, type=int))

    entries, total = price_history_service.list_price_history(
        price_type=request.args.get("type"),
        limit=limit,
        offset=offset,
    )
    return {
        "items": [entry.to_dict() for entry in entries],
        "count": len(entries),
        "total": total,
    }
