# Overview: Flask API routes for the cashier cart, holds, checkout and payment confirmation.

"""Cashier-facing transaction API. Every route acts on the X-Cashier-Id cashier."""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import KasirError, StockValidationFailed
from ..decorators import require_cashier
from ..services import cart_service, checkout_service, report_service, settings_service
from ..time_utils import to_utc_z
from ..validation import require_int, optional_str, parse_checkout_request


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _hold_to_dict(summary: dict) -> dict:
    data = {
        "hold_id": summary["hold_id"],
        "label": summary["label"],
        "held_at": to_utc_z(summary["held_at"]),
        "items_count": summary["items_count"],
        "total": summary["total"],
    }
    if "items" in summary:
        data["items"] = [line.to_dict() for line in summary["items"]]
    return data


def _error(e: KasirError):
    return jsonify(e.to_dict()), e.status_code


# =============================================================================
# CART
# =============================================================================

@transactions_bp.get("/cart")
@require_cashier
def get_cart_route():
    try:
        lines = cart_service.get_active_lines(g.cashier_id)
        setting = settings_service.get_payment_setting()
        return jsonify({
            "items": [line.to_dict() for line in lines],
            "total": cart_service.cart_total(lines),
            "held_carts": [_hold_to_dict(s) for s in cart_service.list_held_carts(g.cashier_id)],
            "payment_gateways": setting.enabled_gateways(),
            "default_gateway": setting.effective_default_gateway(),
        }), 200
    except KasirError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to load cart")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/cart")
@require_cashier
def add_to_cart_route():
    try:
        data = request.get_json(silent=True) or {}
        product_id = require_int(data, "product_id", minimum=1)
        qty = require_int(data, "qty", minimum=1)

        line = cart_service.add_item(g.cashier_id, product_id, qty)
        return jsonify({"line": line.to_dict()}), 201
    except KasirError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to add cart item")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.patch("/cart/<int:line_id>")
@require_cashier
def update_cart_line_route(line_id: int):
    try:
        data = request.get_json(silent=True) or {}
        qty = require_int(data, "qty", minimum=1)

        line = cart_service.update_qty(g.cashier_id, line_id, qty)
        return jsonify({"line": line.to_dict()}), 200
    except KasirError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to update cart item")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.delete("/cart/<int:line_id>")
@require_cashier
def remove_cart_line_route(line_id: int):
    try:
        cart_service.remove_line(g.cashier_id, line_id)
        return jsonify({"deleted": line_id}), 200
    except KasirError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to remove cart item")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# HOLDS
# =============================================================================

@transactions_bp.get("/holds")
@require_cashier
def list_holds_route():
    try:
        holds = cart_service.list_held_carts(g.cashier_id, include_items=True)
        return jsonify({"held_carts": [_hold_to_dict(s) for s in holds]}), 200
    except KasirError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to list held carts")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/holds")
@require_cashier
def hold_cart_route():
    try:
        data = request.get_json(silent=True) or {}
        label = optional_str(data, "label")

        summary = cart_service.hold(g.cashier_id, label)
        return jsonify({"hold": _hold_to_dict(summary)}), 201
    except KasirError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to hold cart")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/holds/<hold_id>/resume")
@require_cashier
def resume_hold_route(hold_id: str):
    try:
        lines = cart_service.resume(g.cashier_id, hold_id)
        return jsonify({"items": [line.to_dict() for line in lines]}), 200
    except KasirError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to resume held cart")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.delete("/holds/<hold_id>")
@require_cashier
def discard_hold_route(hold_id: str):
    try:
        deleted = cart_service.discard(g.cashier_id, hold_id)
        return jsonify({"hold_id": hold_id, "deleted": deleted}), 200
    except KasirError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to discard held cart")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# CHECKOUT
# =============================================================================

@transactions_bp.post("/checkout")
@require_cashier
def checkout_route():
    """
    Finalize the active cart.

    201 with the transaction and a redirect target. When only the payment
    gateway failed the sale still exists: 201 plus ``payment_error``.
    """
    try:
        data = request.get_json(silent=True) or {}
        checkout_request = parse_checkout_request(data)

        result = checkout_service.checkout(g.cashier_id, checkout_request)

        body = {
            "transaction": result.transaction.to_dict(include_details=True),
            "redirect": result.redirect,
        }
        if result.payment_error is not None:
            body["payment_error"] = result.payment_error.to_dict()
        return jsonify(body), 201
    except StockValidationFailed as e:
        return jsonify({
            "error": e.message,
            "out_of_stock": e.out_of_stock,
            "insufficient_stock": e.insufficient_stock,
        }), 422
    except KasirError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Checkout failed")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# HISTORY / PRINT / PAYMENT CONFIRMATION
# =============================================================================

@transactions_bp.get("/history")
@require_cashier
def history_route():
    try:
        filters = report_service.parse_filters(request.args)
        history = report_service.transaction_history(g.cashier_id, filters)
        return jsonify({
            "transactions": history,
            "filters": {
                "invoice": filters.invoice,
                "start_date": filters.start.isoformat(),
                "end_date": filters.end.isoformat(),
            },
        }), 200
    except KasirError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to load transaction history")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/<invoice>")
@require_cashier
def get_transaction_route(invoice: str):
    try:
        transaction = checkout_service.get_transaction(invoice)
        return jsonify({"transaction": transaction.to_dict(include_details=True)}), 200
    except KasirError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to load transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/<invoice>/payment-status")
def payment_status_route(invoice: str):
    """Gateway callback or manual confirmation of a pending payment."""
    try:
        data = request.get_json(silent=True) or {}
        status = str(data.get("status") or "").strip().lower()
        reference = optional_str(data, "reference", max_length=255)

        transaction = checkout_service.update_payment_status(invoice, status, reference)
        return jsonify({"transaction": transaction.to_dict()}), 200
    except KasirError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to update payment status")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/<invoice>/charge")
@require_cashier
def retry_charge_route(invoice: str):
    """Ask the gateway again for a pending sale whose first charge failed."""
    try:
        transaction = checkout_service.retry_charge(invoice)
        return jsonify({"transaction": transaction.to_dict()}), 200
    except KasirError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to charge transaction")
        return jsonify({"error": "Internal server error"}), 500
