# Overview: Checkout coordinator turning a cashier's active cart into a persisted sale.

"""
Checkout Service

One checkout attempt moves through:

    VALIDATING -> ALLOCATING -> PERSISTING -> STOCK_COMMITTED -> (GATEWAY_PENDING | DONE)

Everything up to STOCK_COMMITTED is a single unit of work: the transaction
row, its details and profit records, the stock decrements and the deletion of
the consumed cart lines are committed together or not at all.

The gateway call happens after that commit. A gateway failure leaves the sale
recorded as pending and is reported next to it; it never unwinds the sale.
payment_status is the join point that a later confirmation updates.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum

import httpx
from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Customer, PaymentSetting, Product, Transaction, TransactionDetail, Profit
from ..models.sales import (
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUS_FAILED,
    PAYMENT_STATUS_EXPIRED,
)
from ..models.settings import GATEWAY_CASH, SUPPORTED_GATEWAYS
from ..errors import (
    ValidationError,
    EmptyCart,
    InsufficientStock,
    StockValidationFailed,
    GatewayNotReady,
    GatewayError,
    TotalsMismatch,
    CustomerNotFound,
    TransactionNotFound,
    InvoiceCollision,
)
from ..validation import CheckoutRequest
from . import allocation_service, cart_service, document_service, stock_service
from .allocation_service import LineInput
from .concurrency import begin_write, run_with_retry
from .gateways import get_gateway


class CheckoutStage(str, Enum):
    VALIDATING = "validating"
    ALLOCATING = "allocating"
    PERSISTING = "persisting"
    STOCK_COMMITTED = "stock_committed"
    GATEWAY_PENDING = "gateway_pending"
    DONE = "done"


@dataclass
class CheckoutResult:
    transaction: Transaction
    payment_error: GatewayError | None = None

    @property
    def redirect(self) -> dict:
        return {"invoice": self.transaction.invoice}


def _enter(stage: CheckoutStage, cashier_id: int) -> None:
    current_app.logger.debug("checkout cashier=%s stage=%s", cashier_id, stage.value)


# =============================================================================
# VALIDATION
# =============================================================================

def _validate_stock(lines) -> None:
    """
    Re-check every line against the product row as it is now.

    Collects every shortfall before failing so the cashier sees the whole list.
    """
    requested: OrderedDict[int, int] = OrderedDict()
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.qty

    out_of_stock = []
    insufficient = []
    for product_id, qty in requested.items():
        product = db.session.get(Product, product_id, populate_existing=True)
        if product is None or product.stock <= 0:
            out_of_stock.append(product.title if product else f"Product #{product_id}")
        elif product.stock < qty:
            insufficient.append(f"{product.title} (available: {product.stock}, requested: {qty})")

    if out_of_stock or insufficient:
        raise StockValidationFailed(out_of_stock, insufficient)


def _load_setting() -> PaymentSetting | None:
    # Read only; the checkout unit must not commit on its own
    return db.session.query(PaymentSetting).order_by(PaymentSetting.id).first()


def _resolve_gateway(request: CheckoutRequest) -> str:
    gateway = request.payment_gateway or GATEWAY_CASH
    if gateway not in SUPPORTED_GATEWAYS:
        raise ValidationError(
            f"payment_gateway must be one of {list(SUPPORTED_GATEWAYS)}",
            details={"gateway": gateway},
        )
    if gateway == GATEWAY_CASH:
        return gateway

    setting = _load_setting()
    if setting is None or not setting.is_gateway_ready(gateway):
        raise GatewayNotReady(gateway)
    return gateway


def _check_submitted(field: str, expected: int, submitted: int | None) -> None:
    if submitted is not None and submitted != expected:
        raise TotalsMismatch(field, expected, submitted)


def _settle_cash(request: CheckoutRequest, gateway: str, grand_total: int) -> tuple[int, int]:
    """Return (cash, change) for the sale."""
    if gateway != GATEWAY_CASH:
        return grand_total, 0
    if request.cash is None:
        raise ValidationError("cash required for cash payments")
    if request.cash < grand_total:
        raise ValidationError(
            "Cash is less than the grand total",
            details={"cash": request.cash, "grand_total": grand_total},
        )
    return request.cash, request.cash - grand_total


# =============================================================================
# CHECKOUT
# =============================================================================

def checkout(
    cashier_id: int,
    request: CheckoutRequest,
    *,
    gateway_client: httpx.Client | None = None,
) -> CheckoutResult:
    """
    Finalize the cashier's active cart as a sale.

    Raises EmptyCart, StockValidationFailed, GatewayNotReady, CustomerNotFound,
    TotalsMismatch or ValidationError with nothing written. A gateway failure
    is returned on the result instead of raised, because the sale already
    exists by then.
    """
    cashier_id = cart_service.validate_cashier_id(cashier_id)

    def _op():
        begin_write()
        _enter(CheckoutStage.VALIDATING, cashier_id)

        cart = cart_service.lock_cart(cashier_id)
        lines = cart_service.active_lines(cart)
        if not lines:
            raise EmptyCart("Cart is empty")

        try:
            _validate_stock(lines)
        except StockValidationFailed as exc:
            current_app.logger.info(
                "checkout cashier=%s rejected: %s", cashier_id, exc.message
            )
            raise

        gateway = _resolve_gateway(request)

        if request.customer_id is not None and db.session.get(Customer, request.customer_id) is None:
            raise CustomerNotFound(request.customer_id)

        _enter(CheckoutStage.ALLOCATING, cashier_id)
        subtotal = cart_service.cart_total(lines)
        amounts = allocation_service.resolve_amounts(
            subtotal,
            discount_type=request.discount_type,
            discount_value=request.discount_value,
            tax_type=request.tax_type,
            tax_value=request.tax_value,
        )
        _check_submitted("discount", amounts.discount, request.discount)
        _check_submitted("tax", amounts.tax, request.tax)
        _check_submitted("grand_total", amounts.grand_total, request.grand_total)

        cash, change = _settle_cash(request, gateway, amounts.grand_total)
        if gateway == GATEWAY_CASH:
            _check_submitted("change", change, request.change)

        allocation = allocation_service.allocate(
            [
                LineInput(
                    unit_price=line.price // max(line.qty, 1),
                    buy_price=line.product.buy_price,
                    qty=line.qty,
                    key=line.id,
                )
                for line in lines
            ],
            amounts.discount,
            amounts.tax,
        )

        _enter(CheckoutStage.PERSISTING, cashier_id)
        invoice = document_service.next_invoice()
        transaction = Transaction(
            cashier_id=cashier_id,
            customer_id=request.customer_id,
            invoice=invoice,
            discount_type=request.discount_type,
            discount_value=request.discount_value,
            discount=amounts.discount,
            tax_type=request.tax_type,
            tax_value=request.tax_value,
            tax=amounts.tax,
            grand_total=amounts.grand_total,
            cash=cash,
            change=change,
            payment_method=gateway,
            payment_status=PAYMENT_STATUS_PAID if gateway == GATEWAY_CASH else PAYMENT_STATUS_PENDING,
        )
        db.session.add(transaction)
        try:
            with db.session.begin_nested():
                db.session.flush()
        except IntegrityError as exc:
            raise InvoiceCollision(invoice) from exc

        for line, allocated in zip(lines, allocation.lines):
            detail = TransactionDetail(
                transaction_id=transaction.id,
                product_id=line.product_id,
                qty=line.qty,
                price=line.price,
            )
            db.session.add(detail)
            db.session.flush()
            db.session.add(Profit(
                transaction_id=transaction.id,
                transaction_detail_id=detail.id,
                total=allocated.profit_floor,
            ))

        # One locked decrement per distinct product
        per_product: OrderedDict[int, int] = OrderedDict()
        for line in lines:
            per_product[line.product_id] = per_product.get(line.product_id, 0) + line.qty
        for product_id, qty in per_product.items():
            try:
                stock_service.reserve_and_decrement(product_id, qty)
            except StockValidationFailed:
                raise
            except InsufficientStock as exc:
                available = exc.details.get("available", 0)
                title = exc.details.get("product", f"Product #{product_id}")
                if available <= 0:
                    raise StockValidationFailed([title], []) from exc
                raise StockValidationFailed(
                    [], [f"{title} (available: {available}, requested: {qty})"]
                ) from exc

        cart_service.consume(lines)
        db.session.commit()
        _enter(CheckoutStage.STOCK_COMMITTED, cashier_id)
        return transaction

    transaction = run_with_retry(_op)
    current_app.logger.info(
        "checkout cashier=%s invoice=%s grand_total=%s method=%s",
        cashier_id, transaction.invoice, transaction.grand_total, transaction.payment_method,
    )

    if transaction.payment_method == GATEWAY_CASH:
        _enter(CheckoutStage.DONE, cashier_id)
        return CheckoutResult(transaction=transaction)

    _enter(CheckoutStage.GATEWAY_PENDING, cashier_id)
    try:
        _charge(transaction, client=gateway_client)
    except GatewayError as exc:
        current_app.logger.warning(
            "gateway %s failed for %s, sale kept pending: %s",
            transaction.payment_method, transaction.invoice, exc.message,
        )
        return CheckoutResult(transaction=transaction, payment_error=exc)
    return CheckoutResult(transaction=transaction)


def _charge(transaction: Transaction, *, client: httpx.Client | None = None) -> Transaction:
    setting = _load_setting()
    if setting is None or not setting.is_gateway_ready(transaction.payment_method):
        raise GatewayError(
            "Payment gateway is no longer configured",
            details={"gateway": transaction.payment_method},
        )

    gateway = get_gateway(transaction.payment_method, client=client)
    result = gateway.create_charge(transaction, setting)

    def _op():
        transaction.payment_reference = result.reference
        transaction.payment_url = result.payment_url
        db.session.commit()
        return transaction

    try:
        return run_with_retry(_op)
    except (OperationalError, StaleDataError) as exc:
        current_app.logger.error(
            "charge %s for %s succeeded but could not be saved: %s",
            result.reference, transaction.invoice, exc,
        )
        raise GatewayError(
            "Payment was created but its reference could not be saved",
            details={
                "gateway": transaction.payment_method,
                "reference": result.reference,
                "payment_url": result.payment_url,
            },
        ) from exc


# =============================================================================
# AFTER THE SALE
# =============================================================================

def get_transaction(invoice: str) -> Transaction:
    transaction = db.session.query(Transaction).filter_by(invoice=invoice).first()
    if transaction is None:
        raise TransactionNotFound(invoice)
    return transaction


CONFIRMATION_STATUSES = (PAYMENT_STATUS_PAID, PAYMENT_STATUS_FAILED, PAYMENT_STATUS_EXPIRED)


def update_payment_status(invoice: str, status: str, reference: str | None = None) -> Transaction:
    """
    Record the gateway's verdict on a pending sale.

    paid is final. Repeating the current status is a no-op so gateway
    callbacks may be delivered more than once.
    """
    if status not in CONFIRMATION_STATUSES:
        raise ValidationError(f"status must be one of {list(CONFIRMATION_STATUSES)}")

    def _op():
        begin_write()
        transaction = get_transaction(invoice)
        if transaction.payment_status == status:
            db.session.rollback()
            return transaction
        if transaction.payment_status == PAYMENT_STATUS_PAID:
            raise ValidationError(
                "Transaction is already paid",
                details={"invoice": invoice, "payment_status": transaction.payment_status},
            )
        transaction.payment_status = status
        if reference:
            transaction.payment_reference = reference
        db.session.commit()
        return transaction

    transaction = run_with_retry(_op)
    current_app.logger.info("payment status invoice=%s status=%s", invoice, transaction.payment_status)
    return transaction


def retry_charge(invoice: str, *, client: httpx.Client | None = None) -> Transaction:
    """Call the gateway again for a pending sale whose first charge failed."""
    transaction = get_transaction(invoice)
    if transaction.payment_method == GATEWAY_CASH:
        raise ValidationError("Cash transactions have no gateway charge")
    if transaction.payment_status != PAYMENT_STATUS_PENDING:
        raise ValidationError(
            "Only pending transactions can be charged again",
            details={"payment_status": transaction.payment_status},
        )
    return _charge(transaction, client=client)
