# Overview: Transaction history and per-line allocation reports.

"""
Reports regenerate each sale's per-line allocation from its stored details
and its stored nominal discount/tax, then round per line for display only.
Totals are summed from the exact values and rounded once, so the TOTAL row
reconciles with the transactions even when the rounded rows do not add up
to it exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from fractions import Fraction

from sqlalchemy import func

from ..extensions import db
from ..models import Transaction, TransactionDetail, Profit
from ..errors import ValidationError
from ..time_utils import day_bounds, parse_date, to_utc_z, utcnow
from .allocation_service import TYPE_PERCENT, LineInput, allocate, display_amount


@dataclass(frozen=True)
class ReportFilters:
    invoice: str | None
    start: date
    end: date


def parse_filters(args) -> ReportFilters:
    """Read ``invoice``, ``start_date`` and ``end_date``; dates default to today."""
    try:
        start = parse_date(args.get("start_date"))
        end = parse_date(args.get("end_date"))
    except ValueError as exc:
        raise ValidationError("Dates must be formatted as YYYY-MM-DD") from exc

    today = utcnow().date()
    start = start or end or today
    end = end or start
    if end < start:
        raise ValidationError("end_date must not be before start_date")

    invoice = (args.get("invoice") or "").strip() or None
    return ReportFilters(invoice=invoice, start=start, end=end)


def _transactions_query(filters: ReportFilters, cashier_id: int | None = None):
    start_dt, end_dt = day_bounds(filters.start, filters.end)
    query = db.session.query(Transaction).filter(
        Transaction.created_at >= start_dt,
        Transaction.created_at < end_dt,
    )
    if cashier_id is not None:
        query = query.filter(Transaction.cashier_id == cashier_id)
    if filters.invoice:
        query = query.filter(Transaction.invoice.ilike(f"%{filters.invoice}%"))
    return query


def transaction_history(cashier_id: int, filters: ReportFilters) -> list[dict]:
    """The cashier's sales in the window, newest first, with item and profit sums."""
    transactions = (
        _transactions_query(filters, cashier_id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .all()
    )
    if not transactions:
        return []

    ids = [t.id for t in transactions]
    items = dict(
        db.session.query(TransactionDetail.transaction_id, func.coalesce(func.sum(TransactionDetail.qty), 0))
        .filter(TransactionDetail.transaction_id.in_(ids))
        .group_by(TransactionDetail.transaction_id)
        .all()
    )
    profits = dict(
        db.session.query(Profit.transaction_id, func.coalesce(func.sum(Profit.total), 0))
        .filter(Profit.transaction_id.in_(ids))
        .group_by(Profit.transaction_id)
        .all()
    )

    history = []
    for transaction in transactions:
        data = transaction.to_dict()
        data["items_count"] = int(items.get(transaction.id, 0))
        data["profit"] = int(profits.get(transaction.id, 0))
        history.append(data)
    return history


def _entered_percent(kind: str, value: int | None) -> float:
    """The percent the cashier typed; nominal amounts show as 0."""
    if kind != TYPE_PERCENT:
        return 0.0
    return float(value or 0)


def transaction_report(filters: ReportFilters, cashier_id: int | None = None) -> dict:
    """
    Rows per sold line, a TOTAL row and a per-product summary.

    Buy prices come from the product as it is now, so a report run after a
    price change shows today's cost against the historical sell price.
    """
    transactions = (
        _transactions_query(filters, cashier_id)
        .order_by(Transaction.created_at, Transaction.id)
        .all()
    )

    rows = []
    totals = {
        "qty": 0,
        "buy_total": 0,
        "sell_total": Fraction(0),
        "profit_total": Fraction(0),
        "discount_amount": Fraction(0),
        "tax_amount": Fraction(0),
    }
    products: dict[int, dict] = {}

    for transaction in transactions:
        details = list(transaction.details)
        discount_percent = _entered_percent(transaction.discount_type, transaction.discount_value)
        tax_percent = _entered_percent(transaction.tax_type, transaction.tax_value)
        allocation = allocate(
            [
                LineInput(
                    unit_price=detail.price // max(detail.qty, 1),
                    buy_price=detail.product.buy_price if detail.product else 0,
                    qty=detail.qty,
                    key=detail,
                )
                for detail in details
            ],
            transaction.discount,
            transaction.tax,
        )

        for line in allocation.lines:
            detail = line.key
            title = detail.product.title if detail.product else f"Product #{detail.product_id}"
            rows.append({
                "invoice": transaction.invoice,
                "date": to_utc_z(transaction.created_at),
                "product": title,
                "qty": line.qty,
                "buy_price": line.buy_price,
                "sell_price": line.unit_price,
                "buy_total": line.buy_total,
                "sell_total": display_amount(line.net_sell),
                "profit_per_unit": display_amount(line.profit / line.qty),
                "profit_total": display_amount(line.profit),
                "discount_percent": discount_percent,
                "discount_amount": display_amount(line.discount),
                "tax_percent": tax_percent,
                "tax_amount": display_amount(line.tax),
            })

            totals["qty"] += line.qty
            totals["buy_total"] += line.buy_total
            totals["sell_total"] += line.net_sell
            totals["profit_total"] += line.profit
            totals["discount_amount"] += line.discount
            totals["tax_amount"] += line.tax

            summary = products.setdefault(detail.product_id, {
                "product_id": detail.product_id,
                "product": title,
                "qty": 0,
                "buy_total": 0,
                "sell_total": Fraction(0),
                "profit_total": Fraction(0),
                "discount_amount": Fraction(0),
                "tax_amount": Fraction(0),
                "_discount_percents": [],
                "_tax_percents": [],
            })
            summary["qty"] += line.qty
            summary["buy_total"] += line.buy_total
            summary["sell_total"] += line.net_sell
            summary["profit_total"] += line.profit
            summary["discount_amount"] += line.discount
            summary["tax_amount"] += line.tax
            if discount_percent:
                summary["_discount_percents"].append(discount_percent)
            if tax_percent:
                summary["_tax_percents"].append(tax_percent)

    if rows:
        rows.append({
            "invoice": "TOTAL",
            "date": None,
            "product": None,
            "qty": totals["qty"],
            "buy_price": None,
            "sell_price": None,
            "buy_total": totals["buy_total"],
            "sell_total": display_amount(totals["sell_total"]),
            "profit_per_unit": None,
            "profit_total": display_amount(totals["profit_total"]),
            "discount_percent": None,
            "discount_amount": display_amount(totals["discount_amount"]),
            "tax_percent": None,
            "tax_amount": display_amount(totals["tax_amount"]),
        })

    summary_rows = []
    for summary in products.values():
        discount_percents = summary.pop("_discount_percents")
        tax_percents = summary.pop("_tax_percents")
        summary_rows.append({
            **summary,
            "sell_total": display_amount(summary["sell_total"]),
            "profit_total": display_amount(summary["profit_total"]),
            "discount_amount": display_amount(summary["discount_amount"]),
            "tax_amount": display_amount(summary["tax_amount"]),
            "avg_discount_percent": (
                round(sum(discount_percents) / len(discount_percents), 2) if discount_percents else 0.0
            ),
            "avg_tax_percent": round(sum(tax_percents) / len(tax_percents), 2) if tax_percents else 0.0,
        })
    summary_rows.sort(key=lambda item: item["product"])

    return {
        "filters": {
            "invoice": filters.invoice,
            "start_date": filters.start.isoformat(),
            "end_date": filters.end.isoformat(),
        },
        "transactions_count": len(transactions),
        "rows": rows,
        "summary": summary_rows,
    }
