from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Cart(db.Model):
    """
    One working cart per cashier.

    The row itself carries no sale data; it exists so every cart mutation and
    the cashier's checkout can lock the same row and run one at a time.
    """
    __tablename__ = "carts"
    __table_args__ = (
        db.UniqueConstraint("cashier_id", name="uq_carts_cashier"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cashier_id = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )


class CartLine(db.Model):
    """
    A product line in a cashier's cart.

    ACTIVE while hold_id is NULL, HELD while hold_id is set. ``price`` is the
    sell_price * qty snapshot taken when the line was added or updated.
    """
    __tablename__ = "cart_lines"
    __table_args__ = (
        db.CheckConstraint("qty >= 1", name="ck_cart_lines_qty_positive"),
        db.Index("ix_cart_lines_cart_hold", "cart_id", "hold_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("carts.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Integer, nullable=False)

    # Hold metadata (all NULL for active lines)
    hold_id = db.Column(db.String(64), nullable=True, index=True)
    hold_label = db.Column(db.String(64), nullable=True)
    held_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    cart = db.relationship("Cart", backref=db.backref("lines", lazy=True))
    product = db.relationship("Product")

    @property
    def is_held(self) -> bool:
        return self.hold_id is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": self.product.to_dict() if self.product else None,
            "qty": self.qty,
            "price": self.price,
            "hold_id": self.hold_id,
            "hold_label": self.hold_label,
            "held_at": to_utc_z(self.held_at) if self.held_at else None,
            "created_at": to_utc_z(self.created_at),
        }
