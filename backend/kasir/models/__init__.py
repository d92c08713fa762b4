from .inventory import Product
from .customers import Customer
from .carts import Cart, CartLine
from .sales import Transaction, TransactionDetail, Profit
from .settings import PaymentSetting

__all__ = [
    'Product',
    'Customer',
    'Cart', 'CartLine',
    'Transaction', 'TransactionDetail', 'Profit',
    'PaymentSetting',
]
