from datetime import timedelta

import pytest

from kasir.errors import ValidationError
from kasir.services import cart_service, checkout_service, report_service
from kasir.time_utils import utcnow
from kasir.validation import parse_checkout_request


CASHIER = 7


@pytest.fixture
def example_sale(example_cart):
    first, second = example_cart
    cart_service.add_item(CASHIER, first.id, 2)
    cart_service.add_item(CASHIER, second.id, 1)
    return checkout_service.checkout(CASHIER, parse_checkout_request({
        "discount_type": "nominal",
        "discount_value": 1000,
        "tax_type": "percent",
        "tax_value": 10,
        "cash": 26400,
    })).transaction


class TestFilters:
    def test_defaults_to_today(self):
        filters = report_service.parse_filters({})
        assert filters.start == filters.end == utcnow().date()
        assert filters.invoice is None

    def test_single_bound_fills_the_other(self):
        filters = report_service.parse_filters({"start_date": "2026-01-05"})
        assert filters.start.isoformat() == filters.end.isoformat() == "2026-01-05"

    def test_bad_date(self):
        with pytest.raises(ValidationError):
            report_service.parse_filters({"start_date": "05/01/2026"})

    def test_reversed_range(self):
        with pytest.raises(ValidationError):
            report_service.parse_filters({"start_date": "2026-01-05", "end_date": "2026-01-01"})


class TestTransactionReport:
    def test_rows_match_allocation(self, example_sale):
        report = report_service.transaction_report(report_service.parse_filters({}))

        assert report["transactions_count"] == 1
        first, second, total = report["rows"]

        assert first["invoice"] == example_sale.invoice
        assert first["product"] == "Kopi Bubuk"
        assert first["qty"] == 2
        assert first["buy_total"] == 12000
        assert first["sell_total"] == 19200
        assert first["profit_total"] == 7200
        assert first["profit_per_unit"] == 3600
        assert first["discount_amount"] == 800
        assert first["discount_percent"] == 0.0
        assert first["tax_amount"] == 1920
        assert first["tax_percent"] == 10.0

        assert second["profit_total"] == 1800

        assert total["invoice"] == "TOTAL"
        assert total["qty"] == 3
        assert total["profit_total"] == 9000
        assert total["discount_amount"] == 1000
        assert total["tax_amount"] == 2400
        assert total["sell_total"] == 24000

    def test_summary_per_product(self, example_sale):
        report = report_service.transaction_report(report_service.parse_filters({}))
        summary = {item["product"]: item for item in report["summary"]}

        assert list(summary) == ["Gula Pasir", "Kopi Bubuk"]
        assert summary["Kopi Bubuk"]["qty"] == 2
        assert summary["Kopi Bubuk"]["profit_total"] == 7200
        assert summary["Kopi Bubuk"]["avg_discount_percent"] == 0.0
        assert summary["Gula Pasir"]["avg_tax_percent"] == 10.0

    def test_percent_columns_show_entered_values(self, example_cart):
        first, second = example_cart
        cart_service.add_item(CASHIER, first.id, 2)
        cart_service.add_item(CASHIER, second.id, 1)
        checkout_service.checkout(CASHIER, parse_checkout_request({
            "discount_type": "percent",
            "discount_value": 10,
            "tax_type": "nominal",
            "tax_value": 500,
            "cash": 23000,
        }))

        report = report_service.transaction_report(report_service.parse_filters({}))
        lines = report["rows"][:-1]

        assert [row["discount_percent"] for row in lines] == [10.0, 10.0]
        assert [row["tax_percent"] for row in lines] == [0.0, 0.0]
        assert [row["discount_amount"] for row in lines] == [2000, 500]
        assert report["summary"][0]["avg_discount_percent"] == 10.0
        assert report["summary"][0]["avg_tax_percent"] == 0.0

    def test_invoice_filter(self, example_sale):
        filters = report_service.parse_filters({"invoice": example_sale.invoice[-4:].lower()})
        assert report_service.transaction_report(filters)["transactions_count"] == 1

        filters = report_service.parse_filters({"invoice": "NO-SUCH-INVOICE"})
        report = report_service.transaction_report(filters)
        assert report["rows"] == []
        assert report["summary"] == []

    def test_outside_window(self, example_sale):
        yesterday = (utcnow() - timedelta(days=1)).date().isoformat()
        filters = report_service.parse_filters({"start_date": yesterday, "end_date": yesterday})
        assert report_service.transaction_report(filters)["transactions_count"] == 0


class TestHistory:
    def test_history_sums(self, example_sale):
        history = report_service.transaction_history(CASHIER, report_service.parse_filters({}))
        assert len(history) == 1
        assert history[0]["invoice"] == example_sale.invoice
        assert history[0]["items_count"] == 3
        assert history[0]["profit"] == 9000

    def test_history_is_per_cashier(self, example_sale):
        assert report_service.transaction_history(99, report_service.parse_filters({})) == []
