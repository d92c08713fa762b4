from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_FAILED = "failed"
PAYMENT_STATUS_EXPIRED = "expired"

PAYMENT_STATUSES = (
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUS_FAILED,
    PAYMENT_STATUS_EXPIRED,
)


class Transaction(db.Model):
    """
    A finalized sale.

    Written once by checkout_service.checkout together with its details,
    profit records and the stock decrements. Afterwards only the payment
    fields (payment_status, payment_reference, payment_url) change, when the
    gateway answers or confirms.

    Discount and tax are stored as a triad: the type the cashier picked
    (nominal/percent), the raw value entered, and the resolved nominal amount.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("invoice", name="uq_transactions_invoice"),
        db.Index("ix_transactions_cashier_created", "cashier_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cashier_id = db.Column(db.Integer, nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    # Human-readable unique code (e.g., "TRX-4K9Q2M7A1Z")
    invoice = db.Column(db.String(64), nullable=False)

    discount_type = db.Column(db.String(16), nullable=False, default="nominal")
    discount_value = db.Column(db.Integer, nullable=False, default=0)
    discount = db.Column(db.Integer, nullable=False, default=0)

    tax_type = db.Column(db.String(16), nullable=False, default="percent")
    tax_value = db.Column(db.Integer, nullable=False, default=0)
    tax = db.Column(db.Integer, nullable=False, default=0)

    grand_total = db.Column(db.Integer, nullable=False)
    cash = db.Column(db.Integer, nullable=False, default=0)
    change = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False, default="cash")
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_STATUS_PAID, index=True)
    payment_reference = db.Column(db.String(255), nullable=True)
    payment_url = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    customer = db.relationship("Customer")

    @property
    def subtotal(self) -> int:
        return sum(detail.price for detail in self.details)

    def to_dict(self, include_details: bool = False) -> dict:
        data = {
            "id": self.id,
            "cashier_id": self.cashier_id,
            "customer_id": self.customer_id,
            "customer": self.customer.to_dict() if self.customer else None,
            "invoice": self.invoice,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "discount": self.discount,
            "tax_type": self.tax_type,
            "tax_value": self.tax_value,
            "tax": self.tax,
            "grand_total": self.grand_total,
            "cash": self.cash,
            "change": self.change,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "payment_reference": self.payment_reference,
            "payment_url": self.payment_url,
            "created_at": to_utc_z(self.created_at),
        }
        if include_details:
            data["subtotal"] = self.subtotal
            data["details"] = [detail.to_dict() for detail in self.details]
        return data


class TransactionDetail(db.Model):
    """One sold line. ``price`` is the line's sell total before discount/tax."""
    __tablename__ = "transaction_details"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    transaction = db.relationship(
        "Transaction",
        backref=db.backref("details", lazy=True, order_by="TransactionDetail.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "product_id": self.product_id,
            "product": self.product.to_dict() if self.product else None,
            "qty": self.qty,
            "price": self.price,
        }


class Profit(db.Model):
    """
    Allocated profit of one transaction detail, floored to a whole minor unit.

    Stored so reports can sum profit without re-deriving it from cost history.
    """
    __tablename__ = "profits"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    transaction_detail_id = db.Column(
        db.Integer, db.ForeignKey("transaction_details.id"), nullable=False, unique=True
    )
    total = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    transaction = db.relationship("Transaction", backref=db.backref("profits", lazy=True))
    detail = db.relationship("TransactionDetail", backref=db.backref("profit", uselist=False))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "transaction_detail_id": self.transaction_detail_id,
            "total": self.total,
        }
