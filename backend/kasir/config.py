# backend/kasir/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/kasir.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///kasir.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Invoice codes look like TRX-4K9Q2M7A1Z
    INVOICE_PREFIX = os.environ.get("INVOICE_PREFIX", "TRX")
    INVOICE_RANDOM_LENGTH = int(os.environ.get("INVOICE_RANDOM_LENGTH", "10"))

    HOLD_LABEL_MAX_LENGTH = 50

    # Outbound payment gateway calls (seconds)
    PAYMENT_GATEWAY_TIMEOUT = float(os.environ.get("PAYMENT_GATEWAY_TIMEOUT", "15"))
    MIDTRANS_SNAP_URL = os.environ.get(
        "MIDTRANS_SNAP_URL", "https://app.midtrans.com/snap/v1/transactions"
    )
    MIDTRANS_SNAP_SANDBOX_URL = os.environ.get(
        "MIDTRANS_SNAP_SANDBOX_URL", "https://app.sandbox.midtrans.com/snap/v1/transactions"
    )
    XENDIT_INVOICE_URL = os.environ.get("XENDIT_INVOICE_URL", "https://api.xendit.co/v2/invoices")
