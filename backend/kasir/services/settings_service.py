# Overview: Payment gateway configuration (singleton PaymentSetting row).

from __future__ import annotations

from ..extensions import db
from ..models import PaymentSetting
from ..models.settings import (
    GATEWAY_CASH,
    GATEWAY_QRIS,
    GATEWAY_MIDTRANS,
    GATEWAY_XENDIT,
    SUPPORTED_GATEWAYS,
)
from ..errors import ValidationError, QrisError
from ..validation import choice, optional_bool, optional_str
from .. import qris
from .concurrency import run_with_retry


def get_payment_setting() -> PaymentSetting:
    """Return the settings row, creating the cash-only default on first use."""
    setting = db.session.query(PaymentSetting).order_by(PaymentSetting.id).first()
    if setting is None:
        setting = PaymentSetting(default_gateway=GATEWAY_CASH)
        db.session.add(setting)
        db.session.commit()
    return setting


def _secret(data: dict, key: str, stored: str | None) -> str | None:
    if key not in data:
        return stored
    return optional_str(data, key, max_length=255)


def update_payment_setting(data: dict) -> PaymentSetting:
    """
    Validate and store a full gateway configuration.

    Errors are keyed by the offending field in ``details["field"]``. Secret keys
    absent from ``data`` keep their stored value, since reads never return them.
    """
    current = get_payment_setting()

    default_gateway = choice(data, "default_gateway", SUPPORTED_GATEWAYS)

    qris_enabled = optional_bool(data, "qris_enabled")
    qris_string = optional_str(data, "qris_string")

    midtrans_enabled = optional_bool(data, "midtrans_enabled")
    midtrans_server_key = _secret(data, "midtrans_server_key", current.midtrans_server_key)
    midtrans_client_key = optional_str(data, "midtrans_client_key", max_length=255)

    xendit_enabled = optional_bool(data, "xendit_enabled")
    xendit_secret_key = _secret(data, "xendit_secret_key", current.xendit_secret_key)
    xendit_public_key = optional_str(data, "xendit_public_key", max_length=255)

    if qris_enabled and not qris_string:
        raise ValidationError(
            "QRIS string is required when QRIS is enabled",
            details={"field": "qris_string"},
        )

    if qris_string:
        try:
            qris.validate_static(qris_string)
        except QrisError as exc:
            raise ValidationError(exc.message, details={"field": "qris_string"}) from exc

    if midtrans_enabled and not (midtrans_server_key and midtrans_client_key):
        raise ValidationError(
            "Midtrans server key and client key are required when Midtrans is enabled",
            details={"field": "midtrans_server_key"},
        )

    if xendit_enabled and not xendit_secret_key:
        raise ValidationError(
            "Xendit secret key is required when Xendit is enabled",
            details={"field": "xendit_secret_key"},
        )

    enabled = {
        GATEWAY_QRIS: qris_enabled,
        GATEWAY_MIDTRANS: midtrans_enabled,
        GATEWAY_XENDIT: xendit_enabled,
    }
    if default_gateway != GATEWAY_CASH and not enabled[default_gateway]:
        raise ValidationError(
            "The default gateway must be enabled",
            details={"field": "default_gateway"},
        )

    def _op():
        setting = get_payment_setting()
        setting.default_gateway = default_gateway

        setting.qris_enabled = qris_enabled
        setting.qris_string = qris_string

        setting.midtrans_enabled = midtrans_enabled
        setting.midtrans_server_key = midtrans_server_key
        setting.midtrans_client_key = midtrans_client_key
        setting.midtrans_production = optional_bool(data, "midtrans_production")

        setting.xendit_enabled = xendit_enabled
        setting.xendit_secret_key = xendit_secret_key
        setting.xendit_public_key = xendit_public_key
        setting.xendit_production = optional_bool(data, "xendit_production")

        db.session.commit()
        return setting

    return run_with_retry(_op)
