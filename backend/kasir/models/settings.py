from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


GATEWAY_CASH = "cash"
GATEWAY_QRIS = "qris"
GATEWAY_MIDTRANS = "midtrans"
GATEWAY_XENDIT = "xendit"

SUPPORTED_GATEWAYS = (GATEWAY_CASH, GATEWAY_QRIS, GATEWAY_MIDTRANS, GATEWAY_XENDIT)

GATEWAY_LABELS = {
    GATEWAY_CASH: ("Cash", "Pay at the counter."),
    GATEWAY_QRIS: ("QRIS", "Scan the QR code to pay."),
    GATEWAY_MIDTRANS: ("Midtrans", "Share a Midtrans Snap payment link with the customer."),
    GATEWAY_XENDIT: ("Xendit", "Create a Xendit invoice automatically."),
}


def _filled(value: str | None) -> bool:
    return bool(value and value.strip())


class PaymentSetting(db.Model):
    """
    Singleton row holding the store's payment gateway configuration.

    Cash is always available. Every other gateway must be both enabled and
    carry its credentials before checkout may use it.
    """
    __tablename__ = "payment_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    default_gateway = db.Column(db.String(16), nullable=False, default=GATEWAY_CASH)

    qris_enabled = db.Column(db.Boolean, nullable=False, default=False)
    qris_string = db.Column(db.Text, nullable=True)

    midtrans_enabled = db.Column(db.Boolean, nullable=False, default=False)
    midtrans_server_key = db.Column(db.String(255), nullable=True)
    midtrans_client_key = db.Column(db.String(255), nullable=True)
    midtrans_production = db.Column(db.Boolean, nullable=False, default=False)

    xendit_enabled = db.Column(db.Boolean, nullable=False, default=False)
    xendit_secret_key = db.Column(db.String(255), nullable=True)
    xendit_public_key = db.Column(db.String(255), nullable=True)
    xendit_production = db.Column(db.Boolean, nullable=False, default=False)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def is_gateway_ready(self, gateway: str) -> bool:
        if gateway == GATEWAY_CASH:
            return True
        if gateway == GATEWAY_QRIS:
            return bool(self.qris_enabled) and _filled(self.qris_string)
        if gateway == GATEWAY_MIDTRANS:
            return (
                bool(self.midtrans_enabled)
                and _filled(self.midtrans_server_key)
                and _filled(self.midtrans_client_key)
            )
        if gateway == GATEWAY_XENDIT:
            return (
                bool(self.xendit_enabled)
                and _filled(self.xendit_secret_key)
                and _filled(self.xendit_public_key)
            )
        return False

    def enabled_gateways(self) -> list[dict]:
        gateways = []
        for gateway in (GATEWAY_QRIS, GATEWAY_MIDTRANS, GATEWAY_XENDIT):
            if self.is_gateway_ready(gateway):
                label, description = GATEWAY_LABELS[gateway]
                gateways.append({"value": gateway, "label": label, "description": description})
        return gateways

    def effective_default_gateway(self) -> str:
        """Configured default, or cash when that gateway is not ready."""
        gateway = self.default_gateway or GATEWAY_CASH
        if gateway != GATEWAY_CASH and not self.is_gateway_ready(gateway):
            return GATEWAY_CASH
        return gateway

    def midtrans_config(self) -> dict:
        return {
            "enabled": self.is_gateway_ready(GATEWAY_MIDTRANS),
            "server_key": self.midtrans_server_key,
            "client_key": self.midtrans_client_key,
            "is_production": bool(self.midtrans_production),
        }

    def xendit_config(self) -> dict:
        return {
            "enabled": self.is_gateway_ready(GATEWAY_XENDIT),
            "secret_key": self.xendit_secret_key,
            "public_key": self.xendit_public_key,
            "is_production": bool(self.xendit_production),
        }

    def to_dict(self, include_secrets: bool = False) -> dict:
        data = {
            "id": self.id,
            "default_gateway": self.default_gateway,
            "qris_enabled": self.qris_enabled,
            "qris_string": self.qris_string,
            "midtrans_enabled": self.midtrans_enabled,
            "midtrans_client_key": self.midtrans_client_key,
            "midtrans_production": self.midtrans_production,
            "xendit_enabled": self.xendit_enabled,
            "xendit_public_key": self.xendit_public_key,
            "xendit_production": self.xendit_production,
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_secrets:
            data["midtrans_server_key"] = self.midtrans_server_key
            data["xendit_secret_key"] = self.xendit_secret_key
        else:
            data["midtrans_server_key_set"] = _filled(self.midtrans_server_key)
            data["xendit_secret_key_set"] = _filled(self.xendit_secret_key)
        return data
