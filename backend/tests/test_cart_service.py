"""Cart state machine: active lines, holds, resume and discard."""

import pytest

from kasir.extensions import db
from kasir.models import CartLine
from kasir.errors import (
    ValidationError,
    OutOfStock,
    InsufficientStock,
    CartLineNotFound,
    EmptyCart,
    ActiveCartNotEmpty,
    HoldNotFound,
    ProductNotFound,
)
from kasir.services import cart_service


CASHIER = 7
OTHER_CASHIER = 8


def snapshot(lines):
    return sorted((line.product_id, line.qty, line.price) for line in lines)


class TestActiveLines:
    def test_add_creates_line_with_price_snapshot(self, make_product):
        product = make_product(sell_price=2500, stock=10)
        line = cart_service.add_item(CASHIER, product.id, 2)
        assert line.qty == 2
        assert line.price == 5000
        assert not line.is_held

    def test_add_same_product_increments(self, make_product):
        product = make_product(sell_price=2500, stock=10)
        cart_service.add_item(CASHIER, product.id, 2)
        cart_service.add_item(CASHIER, product.id, 3)

        lines = cart_service.get_active_lines(CASHIER)
        assert len(lines) == 1
        assert lines[0].qty == 5
        assert lines[0].price == 12500

    def test_add_out_of_stock(self, make_product):
        product = make_product(stock=0)
        with pytest.raises(OutOfStock):
            cart_service.add_item(CASHIER, product.id, 1)
        assert cart_service.get_active_lines(CASHIER) == []

    def test_add_counts_existing_qty(self, make_product):
        product = make_product(stock=3)
        cart_service.add_item(CASHIER, product.id, 2)
        with pytest.raises(InsufficientStock):
            cart_service.add_item(CASHIER, product.id, 2)
        assert cart_service.get_active_lines(CASHIER)[0].qty == 2

    def test_add_unknown_product(self, db_session):
        with pytest.raises(ProductNotFound):
            cart_service.add_item(CASHIER, 12345, 1)

    @pytest.mark.parametrize("qty", [0, -1, 1.5, True])
    def test_add_rejects_bad_qty(self, make_product, qty):
        product = make_product()
        with pytest.raises(ValidationError):
            cart_service.add_item(CASHIER, product.id, qty)

    def test_carts_are_per_cashier(self, make_product):
        product = make_product(stock=10)
        cart_service.add_item(CASHIER, product.id, 1)
        cart_service.add_item(OTHER_CASHIER, product.id, 4)
        assert cart_service.get_active_lines(CASHIER)[0].qty == 1
        assert cart_service.get_active_lines(OTHER_CASHIER)[0].qty == 4

    def test_update_qty(self, make_product):
        product = make_product(sell_price=1000, stock=5)
        line = cart_service.add_item(CASHIER, product.id, 1)
        updated = cart_service.update_qty(CASHIER, line.id, 4)
        assert updated.qty == 4
        assert updated.price == 4000

    def test_update_qty_checks_stock(self, make_product):
        product = make_product(stock=2)
        line = cart_service.add_item(CASHIER, product.id, 1)
        with pytest.raises(InsufficientStock):
            cart_service.update_qty(CASHIER, line.id, 3)

    def test_update_other_cashiers_line(self, make_product):
        product = make_product()
        line = cart_service.add_item(CASHIER, product.id, 1)
        with pytest.raises(CartLineNotFound):
            cart_service.update_qty(OTHER_CASHIER, line.id, 2)

    def test_remove(self, make_product):
        product = make_product()
        line = cart_service.add_item(CASHIER, product.id, 1)
        cart_service.remove_line(CASHIER, line.id)
        assert cart_service.get_active_lines(CASHIER) == []
        with pytest.raises(CartLineNotFound):
            cart_service.remove_line(CASHIER, line.id)


class TestHolds:
    def test_hold_empty_cart(self, db_session):
        with pytest.raises(EmptyCart):
            cart_service.hold(CASHIER, "Meja 3")

    def test_hold_moves_all_active_lines(self, make_product):
        first = make_product("Kopi", sell_price=3000)
        second = make_product("Roti", sell_price=8000)
        cart_service.add_item(CASHIER, first.id, 2)
        cart_service.add_item(CASHIER, second.id, 1)

        summary = cart_service.hold(CASHIER, "Meja 3")

        assert summary["hold_id"].startswith("HOLD-")
        assert summary["label"] == "Meja 3"
        assert summary["items_count"] == 3
        assert summary["total"] == 14000
        assert cart_service.get_active_lines(CASHIER) == []

        held = cart_service.list_held_carts(CASHIER, include_items=True)
        assert len(held) == 1
        assert {line.hold_id for line in held[0]["items"]} == {summary["hold_id"]}

    def test_default_label(self, make_product):
        product = make_product()
        cart_service.add_item(CASHIER, product.id, 1)
        summary = cart_service.hold(CASHIER)
        assert summary["label"].startswith("Transaction ")

    def test_label_too_long(self, make_product):
        product = make_product()
        cart_service.add_item(CASHIER, product.id, 1)
        with pytest.raises(ValidationError):
            cart_service.hold(CASHIER, "x" * 51)

    def test_hold_resume_round_trip(self, make_product):
        first = make_product("Kopi", sell_price=3000)
        second = make_product("Roti", sell_price=8000)
        cart_service.add_item(CASHIER, first.id, 2)
        cart_service.add_item(CASHIER, second.id, 1)
        before = snapshot(cart_service.get_active_lines(CASHIER))

        summary = cart_service.hold(CASHIER, "Meja 3")
        cart_service.resume(CASHIER, summary["hold_id"])

        lines = cart_service.get_active_lines(CASHIER)
        assert snapshot(lines) == before
        for line in lines:
            assert line.hold_id is None
            assert line.hold_label is None
            assert line.held_at is None
        assert cart_service.list_held_carts(CASHIER) == []

    def test_resume_refused_while_active_lines_exist(self, make_product):
        product = make_product()
        cart_service.add_item(CASHIER, product.id, 1)
        summary = cart_service.hold(CASHIER, "A")
        cart_service.add_item(CASHIER, product.id, 1)

        with pytest.raises(ActiveCartNotEmpty):
            cart_service.resume(CASHIER, summary["hold_id"])

    def test_resume_unknown_hold(self, db_session):
        with pytest.raises(HoldNotFound):
            cart_service.resume(CASHIER, "HOLD-MISSING")

    def test_resume_other_cashiers_hold(self, make_product):
        product = make_product()
        cart_service.add_item(CASHIER, product.id, 1)
        summary = cart_service.hold(CASHIER, "A")
        with pytest.raises(HoldNotFound):
            cart_service.resume(OTHER_CASHIER, summary["hold_id"])

    def test_several_holds(self, make_product):
        product = make_product(stock=10)
        cart_service.add_item(CASHIER, product.id, 1)
        first = cart_service.hold(CASHIER, "A")
        cart_service.add_item(CASHIER, product.id, 2)
        second = cart_service.hold(CASHIER, "B")

        held = cart_service.list_held_carts(CASHIER)
        assert [h["hold_id"] for h in held] == [first["hold_id"], second["hold_id"]]
        assert [h["items_count"] for h in held] == [1, 2]

    def test_discard(self, make_product):
        product = make_product()
        cart_service.add_item(CASHIER, product.id, 1)
        summary = cart_service.hold(CASHIER, "A")

        assert cart_service.discard(CASHIER, summary["hold_id"]) == 1
        assert db.session.query(CartLine).count() == 0
        with pytest.raises(HoldNotFound):
            cart_service.discard(CASHIER, summary["hold_id"])
