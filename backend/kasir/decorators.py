# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g


CASHIER_HEADER = "X-Cashier-Id"


def require_cashier(f):
    """
    Require the acting cashier's identity on the request.

    Sets g.cashier_id from the X-Cashier-Id header. Authentication happens in
    front of this service; the header only says whose cart is being worked.

    Returns 401 when the header is missing, 400 when it is not a positive integer.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get(CASHIER_HEADER) or "").strip()
        if not raw:
            return jsonify({"error": "Cashier identity required"}), 401

        if not raw.isdigit() or int(raw) <= 0:
            return jsonify({"error": f"{CASHIER_HEADER} must be a positive integer"}), 400

        g.cashier_id = int(raw)
        return f(*args, **kwargs)

    return decorated_function
