# Overview: Authoritative product stock checks and the locked checkout decrement.

from __future__ import annotations

from ..extensions import db
from ..models import Product
from ..errors import ProductNotFound, OutOfStock, InsufficientStock
from .concurrency import lock_for_update


def get_product(product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.populate_existing().first() if lock else query.first()
    if product is None:
        raise ProductNotFound(product_id)
    return product


def ensure_available(product: Product, qty: int) -> None:
    """
    Check that ``qty`` units of ``product`` could be sold right now.

    Raises OutOfStock when nothing is left, InsufficientStock when some is.
    """
    if product.stock <= 0:
        raise OutOfStock(product.title)
    if product.stock < qty:
        raise InsufficientStock.for_product(product.title, product.stock, qty)


def reserve_and_decrement(product_id: int, qty: int) -> Product:
    """
    Decrement stock for a sale inside the caller's checkout unit.

    Re-reads the row under an exclusive lock because the cart's view of the
    stock may be stale by now; this is the only authoritative gate. Does not
    commit: the caller's unit decides whether the decrement survives.
    """
    product = get_product(product_id, lock=True)
    if product.stock < qty:
        raise InsufficientStock.for_product(product.title, product.stock, qty)
    product.stock = product.stock - qty
    db.session.flush()
    return product
