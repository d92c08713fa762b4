from flask import Blueprint, jsonify, request, current_app

from ..errors import KasirError
from ..services import report_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/transactions")
def transactions_report():
    try:
        filters = report_service.parse_filters(request.args)
        cashier_id = request.args.get("cashier_id", type=int)
        report = report_service.transaction_report(filters, cashier_id=cashier_id)
        return jsonify(report), 200
    except KasirError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to build transactions report")
        return jsonify({"error": "Internal server error"}), 500
