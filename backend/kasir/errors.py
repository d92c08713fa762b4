# Overview: Error taxonomy for cart, checkout, stock, QRIS, and gateway operations.

"""
Checkout error taxonomy.

Validation errors are recovered locally and shown to the cashier.
Consistency errors (stock lost to a concurrent sale) abort the whole unit.
Gateway errors are reported next to an already committed sale.
Fatal errors abort the operation with no partial state.

Every error carries the HTTP status the routes answer with, a human message,
and an optional details dict that is serialized as-is.
"""

from __future__ import annotations


class KasirError(Exception):
    """Base class for all domain errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationError(KasirError):
    """400-level input problem."""


class ProductNotFound(KasirError):
    status_code = 404

    def __init__(self, product_id):
        super().__init__("Product not found", details={"product_id": product_id})


class CartLineNotFound(KasirError):
    status_code = 404

    def __init__(self, line_id):
        super().__init__("Cart item not found", details={"line_id": line_id})


class EmptyCart(KasirError):
    status_code = 422


class ActiveCartNotEmpty(KasirError):
    status_code = 409

    def __init__(self):
        super().__init__("Finish or hold the active cart first")


class HoldNotFound(KasirError):
    status_code = 404

    def __init__(self, hold_id: str):
        super().__init__("Held cart not found", details={"hold_id": hold_id})


class OutOfStock(KasirError):
    status_code = 422

    def __init__(self, title: str):
        super().__init__(f"{title} is out of stock", details={"product": title})


class InsufficientStock(KasirError):
    status_code = 422

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details)

    @classmethod
    def for_product(cls, title: str, available: int, requested: int) -> "InsufficientStock":
        return cls(
            f"Insufficient stock for {title} (available: {available}, requested: {requested})",
            details={"product": title, "available": available, "requested": requested},
        )


class GatewayNotReady(KasirError):
    status_code = 422

    def __init__(self, gateway: str):
        super().__init__("Payment gateway is not configured", details={"gateway": gateway})


class TotalsMismatch(KasirError):
    status_code = 422

    def __init__(self, field: str, expected: int, submitted):
        super().__init__(
            f"Submitted {field} does not match the computed amount",
            details={"field": field, "expected": expected, "submitted": submitted},
        )


# =============================================================================
# QRIS CODEC
# =============================================================================

class QrisError(KasirError):
    status_code = 422


class MalformedPayload(QrisError):
    pass


class NotStaticQris(QrisError):
    pass


class MissingCountryCode(QrisError):
    pass


class InvalidAmount(QrisError):
    pass


# =============================================================================
# CONSISTENCY
# =============================================================================

class StockValidationFailed(InsufficientStock):
    """
    Raised when stock re-checked at checkout cannot cover the cart.

    Subclasses InsufficientStock so a cashier who loses a stock race sees the
    same failure whether the shortfall was caught by validation or by the
    locked decrement.
    """

    def __init__(self, out_of_stock: list[str], insufficient_stock: list[str]):
        parts = []
        if out_of_stock:
            parts.append("Out of stock: " + ", ".join(out_of_stock))
        if insufficient_stock:
            parts.append("Insufficient stock for: " + ", ".join(insufficient_stock))
        super().__init__(
            "; ".join(parts),
            details={
                "out_of_stock": list(out_of_stock),
                "insufficient_stock": list(insufficient_stock),
            },
        )
        self.out_of_stock = list(out_of_stock)
        self.insufficient_stock = list(insufficient_stock)


# =============================================================================
# GATEWAY / FATAL
# =============================================================================

class GatewayError(KasirError):
    status_code = 502


class InvoiceCollision(KasirError):
    status_code = 500

    def __init__(self, invoice: str):
        super().__init__("Generated invoice already exists", details={"invoice": invoice})


class TransactionNotFound(KasirError):
    status_code = 404

    def __init__(self, invoice: str):
        super().__init__("Transaction not found", details={"invoice": invoice})


class CustomerNotFound(KasirError):
    status_code = 404

    def __init__(self, customer_id):
        super().__init__("Customer not found", details={"customer_id": customer_id})
