# Overview: Per-cashier cart working set with hold/resume/discard.

"""
Cart Service

Each cashier owns one Cart row. Its CartLines are either ACTIVE (hold_id is
NULL) or HELD (hold_id set). A cashier works one active set at a time and may
park any number of held groups, each under its own hold_id.

State machine per line:
    ACTIVE --hold--> HELD --resume--> ACTIVE --checkout--> (consumed)
    ACTIVE --remove--> (deleted)      HELD --discard--> (deleted)

Every mutation locks the cashier's Cart row first, so mutations and that
cashier's checkout never interleave. Stock is checked here against the
product row as it is now, but nothing is reserved; the authoritative check
happens again at checkout.
"""

from __future__ import annotations

from secrets import token_hex

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Cart, CartLine
from ..errors import (
    ValidationError,
    CartLineNotFound,
    EmptyCart,
    ActiveCartNotEmpty,
    HoldNotFound,
)
from ..time_utils import utcnow
from . import stock_service
from .concurrency import begin_write, lock_for_update, run_with_retry


def validate_cashier_id(cashier_id) -> int:
    if not isinstance(cashier_id, int) or isinstance(cashier_id, bool) or cashier_id <= 0:
        raise ValidationError("cashier_id must be a positive integer")
    return cashier_id


def _require_qty(qty) -> int:
    if not isinstance(qty, int) or isinstance(qty, bool) or qty < 1:
        raise ValidationError("qty must be an integer of at least 1")
    return qty


def lock_cart(cashier_id: int) -> Cart:
    """
    Fetch (or create) the cashier's cart row, locked for the current unit.

    Must run inside a unit opened with begin_write().
    """
    cart = lock_for_update(db.session.query(Cart).filter_by(cashier_id=cashier_id)).first()
    if cart is not None:
        return cart

    cart = Cart(cashier_id=cashier_id)
    db.session.add(cart)
    try:
        with db.session.begin_nested():
            db.session.flush()
    except IntegrityError:
        # Another request created it first
        cart = lock_for_update(db.session.query(Cart).filter_by(cashier_id=cashier_id)).one()
    return cart


def _active_query(cart: Cart):
    return db.session.query(CartLine).filter(
        CartLine.cart_id == cart.id,
        CartLine.hold_id.is_(None),
    )


def _held_query(cart: Cart, hold_id: str):
    return db.session.query(CartLine).filter(
        CartLine.cart_id == cart.id,
        CartLine.hold_id == hold_id,
    )


def active_lines(cart: Cart) -> list[CartLine]:
    return _active_query(cart).order_by(CartLine.id).all()


def _find_cart(cashier_id: int) -> Cart | None:
    return db.session.query(Cart).filter_by(cashier_id=validate_cashier_id(cashier_id)).first()


# =============================================================================
# QUERIES
# =============================================================================

def get_active_lines(cashier_id: int) -> list[CartLine]:
    cart = _find_cart(cashier_id)
    if cart is None:
        return []
    return active_lines(cart)


def cart_total(lines: list[CartLine]) -> int:
    return sum(line.price for line in lines)


def list_held_carts(cashier_id: int, include_items: bool = False) -> list[dict]:
    """Held groups of the cashier, oldest first, with item count and total."""
    cart = _find_cart(cashier_id)
    if cart is None:
        return []

    lines = (
        db.session.query(CartLine)
        .filter(CartLine.cart_id == cart.id, CartLine.hold_id.isnot(None))
        .order_by(CartLine.held_at, CartLine.id)
        .all()
    )

    groups: dict[str, list[CartLine]] = {}
    for line in lines:
        groups.setdefault(line.hold_id, []).append(line)

    summaries = []
    for hold_id, items in groups.items():
        first = items[0]
        summary = {
            "hold_id": hold_id,
            "label": first.hold_label,
            "held_at": first.held_at,
            "items_count": sum(item.qty for item in items),
            "total": cart_total(items),
        }
        if include_items:
            summary["items"] = items
        summaries.append(summary)
    return summaries


# =============================================================================
# ACTIVE LINE MUTATIONS
# =============================================================================

def add_item(cashier_id: int, product_id: int, qty: int) -> CartLine:
    """
    Add ``qty`` of a product to the active cart.

    An existing active line for the product is incremented; its price
    snapshot is recomputed from the current sell price.
    """
    validate_cashier_id(cashier_id)
    _require_qty(qty)

    def _op():
        begin_write()
        cart = lock_cart(cashier_id)
        product = stock_service.get_product(product_id)

        line = _active_query(cart).filter(CartLine.product_id == product_id).first()
        current_qty = line.qty if line else 0
        stock_service.ensure_available(product, current_qty + qty)

        if line:
            line.qty = current_qty + qty
            line.price = product.sell_price * line.qty
        else:
            line = CartLine(
                cart_id=cart.id,
                product_id=product.id,
                qty=qty,
                price=product.sell_price * qty,
            )
            db.session.add(line)

        db.session.commit()
        return line

    return run_with_retry(_op)


def _get_active_line(cart: Cart, line_id: int) -> CartLine:
    line = _active_query(cart).filter(CartLine.id == line_id).first()
    if line is None:
        raise CartLineNotFound(line_id)
    return line


def update_qty(cashier_id: int, line_id: int, qty: int) -> CartLine:
    """Set an active line's quantity, re-checked against current stock."""
    validate_cashier_id(cashier_id)
    _require_qty(qty)

    def _op():
        begin_write()
        cart = lock_cart(cashier_id)
        line = _get_active_line(cart, line_id)
        product = stock_service.get_product(line.product_id)
        stock_service.ensure_available(product, qty)

        line.qty = qty
        line.price = product.sell_price * qty

        db.session.commit()
        return line

    return run_with_retry(_op)


def remove_line(cashier_id: int, line_id: int) -> None:
    validate_cashier_id(cashier_id)

    def _op():
        begin_write()
        cart = lock_cart(cashier_id)
        line = _get_active_line(cart, line_id)
        db.session.delete(line)
        db.session.commit()

    run_with_retry(_op)


# =============================================================================
# HOLD / RESUME / DISCARD
# =============================================================================

def new_hold_id() -> str:
    return f"HOLD-{token_hex(8).upper()}"


def hold(cashier_id: int, label: str | None = None) -> dict:
    """
    Park every active line under a fresh hold_id.

    Returns the hold summary. Raises EmptyCart when nothing is active.
    """
    validate_cashier_id(cashier_id)
    max_length = current_app.config.get("HOLD_LABEL_MAX_LENGTH", 50)
    if label is not None:
        label = label.strip()
        if len(label) > max_length:
            raise ValidationError(f"label must be at most {max_length} characters")

    def _op():
        begin_write()
        cart = lock_cart(cashier_id)
        lines = active_lines(cart)
        if not lines:
            raise EmptyCart("Cart is empty, nothing to hold")

        held_at = utcnow()
        hold_id = new_hold_id()
        hold_label = label or f"Transaction {held_at:%H:%M}"

        for line in lines:
            line.hold_id = hold_id
            line.hold_label = hold_label
            line.held_at = held_at

        db.session.commit()
        return {
            "hold_id": hold_id,
            "label": hold_label,
            "held_at": held_at,
            "items_count": sum(line.qty for line in lines),
            "total": cart_total(lines),
        }

    return run_with_retry(_op)


def resume(cashier_id: int, hold_id: str) -> list[CartLine]:
    """
    Make a held group the active cart again.

    Refused while the cashier still has active lines: one active cart at a time.
    """
    validate_cashier_id(cashier_id)

    def _op():
        begin_write()
        cart = lock_cart(cashier_id)
        if _active_query(cart).count() > 0:
            raise ActiveCartNotEmpty()

        lines = _held_query(cart, hold_id).order_by(CartLine.id).all()
        if not lines:
            raise HoldNotFound(hold_id)

        for line in lines:
            line.hold_id = None
            line.hold_label = None
            line.held_at = None

        db.session.commit()
        return lines

    return run_with_retry(_op)


def discard(cashier_id: int, hold_id: str) -> int:
    """Delete a held group. Returns the number of lines removed."""
    validate_cashier_id(cashier_id)

    def _op():
        begin_write()
        cart = lock_cart(cashier_id)
        deleted = _held_query(cart, hold_id).delete(synchronize_session=False)
        if deleted == 0:
            raise HoldNotFound(hold_id)
        db.session.commit()
        return deleted

    return run_with_retry(_op)


# =============================================================================
# CHECKOUT HAND-OFF
# =============================================================================

def consume(lines: list[CartLine]) -> None:
    """
    Delete lines handed to checkout.

    Runs inside the checkout unit (no commit); the lines disappear only if the
    sale is committed.
    """
    for line in lines:
        db.session.delete(line)
    db.session.flush()
