# Overview: Flask API routes for the store's payment gateway configuration.

from flask import Blueprint, jsonify, request, current_app

from ..errors import KasirError
from ..services import settings_service
from ..services.gateways import registered_gateways


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


def _payload(setting) -> dict:
    return {
        "settings": setting.to_dict(),
        "payment_gateways": setting.enabled_gateways(),
        "default_gateway": setting.effective_default_gateway(),
        "supported_gateways": ["cash", *registered_gateways()],
    }


@settings_bp.get("/payments")
def get_payment_settings_route():
    try:
        setting = settings_service.get_payment_setting()
        return jsonify(_payload(setting)), 200
    except Exception:
        current_app.logger.exception("Failed to load payment settings")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.put("/payments")
def update_payment_settings_route():
    """
    Replace the gateway configuration.

    Validation errors name the offending field in details.field.
    """
    try:
        data = request.get_json(silent=True) or {}
        setting = settings_service.update_payment_setting(data)
        return jsonify(_payload(setting)), 200
    except KasirError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update payment settings")
        return jsonify({"error": "Internal server error"}), 500
