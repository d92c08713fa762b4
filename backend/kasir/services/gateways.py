# Overview: Payment gateway implementations behind one create_charge interface.

"""
Payment gateways.

Cash needs no charge. Every other payment method is a PaymentGateway
subclass registered under its method name; checkout looks the method up in
the registry and calls create_charge() after the sale is committed.

Adding a gateway: add its constant in models.settings, its readiness rule in
PaymentSetting.is_gateway_ready, and a registered subclass here.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from flask import current_app

from ..models import Transaction, PaymentSetting
from ..models.settings import GATEWAY_CASH, GATEWAY_QRIS, GATEWAY_MIDTRANS, GATEWAY_XENDIT
from ..errors import GatewayError, QrisError, ValidationError
from .. import qris


@dataclass(frozen=True)
class ChargeResult:
    reference: str | None
    payment_url: str | None


_REGISTRY: dict[str, type["PaymentGateway"]] = {}


def register_gateway(cls):
    _REGISTRY[cls.name] = cls
    return cls


def registered_gateways() -> list[str]:
    return sorted(_REGISTRY)


def get_gateway(name: str, *, client: httpx.Client | None = None) -> "PaymentGateway":
    if name == GATEWAY_CASH:
        raise ValidationError("Cash payments do not use a gateway")
    cls = _REGISTRY.get(name)
    if cls is None:
        raise ValidationError(f"Gateway {name} is not supported", details={"gateway": name})
    return cls(client=client)


class PaymentGateway:
    name: str = ""

    def __init__(self, client: httpx.Client | None = None):
        self._client = client

    def create_charge(self, transaction: Transaction, setting: PaymentSetting) -> ChargeResult:
        raise NotImplementedError


@register_gateway
class QrisGateway(PaymentGateway):
    """Turns the merchant's static QRIS into a dynamic one for the sale total."""
    name = GATEWAY_QRIS

    def create_charge(self, transaction: Transaction, setting: PaymentSetting) -> ChargeResult:
        if not (setting.qris_string or "").strip():
            raise GatewayError("Static QRIS is not configured")
        if transaction.grand_total <= 0:
            raise GatewayError("QRIS amount is invalid", details={"amount": transaction.grand_total})

        try:
            payload = qris.encode(setting.qris_string.strip(), int(transaction.grand_total))
        except QrisError as exc:
            raise GatewayError(exc.message, details=exc.details) from exc

        return ChargeResult(reference=transaction.invoice, payment_url=payload)


class HttpGateway(PaymentGateway):
    """Shared JSON-over-HTTPS plumbing for hosted payment pages."""

    def _post(self, url: str, *, auth: tuple[str, str], payload: dict) -> dict:
        timeout = current_app.config.get("PAYMENT_GATEWAY_TIMEOUT", 15)
        try:
            if self._client is not None:
                response = self._client.post(url, auth=auth, json=payload, timeout=timeout)
            else:
                with httpx.Client(timeout=timeout) as client:
                    response = client.post(url, auth=auth, json=payload)
        except httpx.HTTPError as exc:
            raise GatewayError(
                f"{self.name} request failed",
                details={"gateway": self.name, "reason": str(exc)},
            ) from exc

        if response.status_code >= 400:
            raise GatewayError(
                f"{self.name} rejected the charge",
                details={
                    "gateway": self.name,
                    "status_code": response.status_code,
                    "body": response.text[:500],
                },
            )

        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError(f"{self.name} returned an invalid response") from exc


@register_gateway
class MidtransGateway(HttpGateway):
    """Midtrans Snap: returns a snap token and its hosted payment page."""
    name = GATEWAY_MIDTRANS

    def create_charge(self, transaction: Transaction, setting: PaymentSetting) -> ChargeResult:
        config = setting.midtrans_config()
        url = (
            current_app.config["MIDTRANS_SNAP_URL"]
            if config["is_production"]
            else current_app.config["MIDTRANS_SNAP_SANDBOX_URL"]
        )
        payload = {
            "transaction_details": {
                "order_id": transaction.invoice,
                "gross_amount": int(transaction.grand_total),
            },
        }
        if transaction.customer is not None:
            payload["customer_details"] = {
                "first_name": transaction.customer.name,
                "phone": transaction.customer.phone,
            }

        data = self._post(url, auth=(config["server_key"], ""), payload=payload)
        if not data.get("redirect_url"):
            raise GatewayError("midtrans response has no redirect_url", details={"response": data})
        return ChargeResult(reference=data.get("token"), payment_url=data["redirect_url"])


@register_gateway
class XenditGateway(HttpGateway):
    """Xendit invoices: returns the invoice id and its hosted page."""
    name = GATEWAY_XENDIT

    def create_charge(self, transaction: Transaction, setting: PaymentSetting) -> ChargeResult:
        config = setting.xendit_config()
        payload = {
            "external_id": transaction.invoice,
            "amount": int(transaction.grand_total),
            "description": f"Payment for {transaction.invoice}",
        }

        data = self._post(
            current_app.config["XENDIT_INVOICE_URL"],
            auth=(config["secret_key"], ""),
            payload=payload,
        )
        if not data.get("invoice_url"):
            raise GatewayError("xendit response has no invoice_url", details={"response": data})
        return ChargeResult(reference=data.get("id"), payment_url=data["invoice_url"])
