import pytest

from kasir.extensions import db
from kasir.errors import ProductNotFound, OutOfStock, InsufficientStock
from kasir.services import stock_service


class TestEnsureAvailable:
    def test_enough_stock(self, make_product):
        product = make_product(stock=3)
        stock_service.ensure_available(product, 3)

    def test_out_of_stock(self, make_product):
        product = make_product("Teh Botol", stock=0)
        with pytest.raises(OutOfStock) as exc:
            stock_service.ensure_available(product, 1)
        assert "Teh Botol" in exc.value.message

    def test_insufficient_stock(self, make_product):
        product = make_product("Teh Botol", stock=2)
        with pytest.raises(InsufficientStock) as exc:
            stock_service.ensure_available(product, 3)
        assert exc.value.details == {"product": "Teh Botol", "available": 2, "requested": 3}


class TestReserveAndDecrement:
    def test_decrements(self, make_product):
        product = make_product(stock=5)
        stock_service.reserve_and_decrement(product.id, 2)
        db.session.commit()
        assert db.session.get(type(product), product.id, populate_existing=True).stock == 3

    def test_rejects_more_than_available(self, make_product):
        product = make_product(stock=1)
        with pytest.raises(InsufficientStock):
            stock_service.reserve_and_decrement(product.id, 2)
        db.session.rollback()
        assert db.session.get(type(product), product.id, populate_existing=True).stock == 1

    def test_unknown_product(self, db_session):
        with pytest.raises(ProductNotFound):
            stock_service.reserve_and_decrement(999, 1)
