from flask import Blueprint, jsonify, request

from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
def dashboard_report():
    threshold = request.args.get("low_stock_threshold", type=int)
    if threshold is not None and threshold < 0:
        return jsonify({"error": "low_stock_threshold must be >= 0"}), 400

    report = reporting_service.dashboard_stats(low_stock_threshold=threshold)
    return jsonify(report), 200
