# Overview: Invoice code generation for new transactions.

from __future__ import annotations

import secrets
import string

from flask import current_app

from ..extensions import db
from ..models import Transaction
from ..errors import InvoiceCollision


INVOICE_ALPHABET = string.ascii_uppercase + string.digits


def random_invoice(prefix: str = "TRX", length: int = 10) -> str:
    """Return e.g. ``TRX-4K9Q2M7A1Z``."""
    body = "".join(secrets.choice(INVOICE_ALPHABET) for _ in range(length))
    return f"{prefix}-{body}"


def next_invoice() -> str:
    """
    Allocate an invoice code for a transaction about to be written.

    A clash with an existing invoice means the random space is too small for
    the data set; that is a configuration problem, so it is raised instead of
    quietly drawing again.
    """
    invoice = random_invoice(
        prefix=current_app.config.get("INVOICE_PREFIX", "TRX"),
        length=current_app.config.get("INVOICE_RANDOM_LENGTH", 10),
    )
    exists = db.session.query(Transaction.id).filter_by(invoice=invoice).first()
    if exists:
        raise InvoiceCollision(invoice)
    return invoice
