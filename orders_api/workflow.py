"""
workflow.py — Order placement transaction

This module contains the one place where an order is placed. Every trigger
surface (function router, FastAPI app) calls place_order().

Workflow Overview:
1. Fetch the product and its current stock
2. Reject the order if the stock is insufficient
3. Decrement the stock with a conditional update (fails instead of going negative)
4. Insert the order with the price captured in step 1
5. Restore the stock when the insert certainly did not run (Saga Pattern)
"""

import logging

from pydantic import ValidationError

from . import queries
from .catalog import get_product_with_inventory
from .errors import (
    DatabaseError,
    InsufficientStock,
    InvalidRequest,
    QueryError,
    QueryNotExecuted,
    ResponseParseError,
)
from .models import NewOrderRequest, OrderConfirmation

log = logging.getLogger(__name__)


def validate_order_request(customer_name, product_id, quantity) -> NewOrderRequest:
    """
    Checks the order preconditions without touching the store.

    Raises:
        InvalidRequest: If the customer name is blank, the product id is missing,
            or the quantity is not an integer greater than zero.
    """
    try:
        return NewOrderRequest(customerName=customer_name, productId=product_id, quantity=quantity)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
        log.warning(f"Rejected order request, invalid fields: {fields}")
        raise InvalidRequest("주문 정보가 올바르지 않습니다.") from e


def place_order(client, customer_name, product_id, quantity) -> OrderConfirmation:
    """
    Places an order: checks stock, decrements it and records the order.

    The store calls are issued strictly one after the other. Once the stock has been
    decremented an order must be recorded; if the insert certainly did not run the
    decrement is undone by a compensating update. The failure is reported either way.

    Args:
        client: Query executor with an execute(query, params) method (normally a QueryClient).
        customer_name (str): Name of the ordering customer.
        product_id (int | str): Identifier of the product.
        quantity (int): Number of units to order.

    Returns:
        OrderConfirmation: Order id, totals, order timestamp and the remaining stock.

    Raises:
        InvalidRequest: Before any store call, if the input is invalid.
        ProductNotFound: If the product does not exist. Nothing is mutated.
        InsufficientStock: If the stock does not cover the quantity. Nothing is mutated.
        DatabaseError: If a store call fails. Stock is restored only when the insert certainly
            did not run; an insert with an unknown outcome is logged for reconciliation.
    """
    request = validate_order_request(customer_name, product_id, quantity)
    log_prefix = f"[Order: {request.customerName}/{request.productId}]"

    log.info(f"{log_prefix} Starting order for {request.quantity} unit(s).")

    # --- 1. Product and stock ---
    product = get_product_with_inventory(client, request.productId)

    # --- 2. Stock check ---
    if product.stock_quantity < request.quantity:
        log.warning(f"{log_prefix} Rejected: stock {product.stock_quantity} < requested {request.quantity}.")
        raise InsufficientStock(product.stock_quantity)

    # --- 3. Decrement (point of no return) ---
    log.info(f"{log_prefix} Step 3: decrementing stock...")
    try:
        decrement = client.execute(queries.DECREMENT_STOCK, [request.quantity, request.productId])
    except QueryError as e:
        log.error(f"{log_prefix} Stock decrement failed: {e}")
        raise DatabaseError("decrement_stock", e) from e

    row = decrement.first()
    if row is None:
        # A concurrent order took the stock between step 1 and step 3.
        log.warning(f"{log_prefix} Rejected: conditional decrement matched no inventory row.")
        raise InsufficientStock(product.stock_quantity)

    try:
        remaining_stock = _read_int(row, "stock_quantity")
    except ResponseParseError as e:
        _restore_stock(client, request, log_prefix)
        raise DatabaseError("decrement_stock", e) from e

    # --- 4. Insert order ---
    unit_price = product.price_numeric
    total_price = unit_price * request.quantity
    log.info(f"{log_prefix} Step 4: recording order (total {total_price}).")
    try:
        inserted = client.execute(queries.INSERT_ORDER, [
            request.customerName,
            request.productId,
            request.quantity,
            unit_price,
            total_price,
        ])
        order_row = inserted.first()
        if order_row is None:
            raise ResponseParseError("order insert returned no row")
    except QueryNotExecuted as e:
        log.error(f"{log_prefix} Order insert never reached the store ({e}). Starting compensation.")
        _restore_stock(client, request, log_prefix)
        raise DatabaseError("insert_order", e) from e
    except QueryError as e:
        # The order may have been saved; restoring stock could leave an order without a decrement.
        log.critical(
            f"{log_prefix} ORDER OUTCOME UNKNOWN: stock decremented by {request.quantity}, "
            f"insert reply failed ({e}). No compensation. MANUAL RECONCILIATION REQUIRED!"
        )
        raise DatabaseError("insert_order", e) from e

    confirmation = OrderConfirmation(
        id=order_row.get("id"),
        customerName=request.customerName,
        productTitle=product.title,
        quantity=request.quantity,
        unitPrice=unit_price,
        totalPrice=total_price,
        orderDate=_as_text(order_row.get("order_date")),
        remainingStock=remaining_stock,
    )
    log.info(f"{log_prefix} Order {confirmation.id} completed. Remaining stock: {remaining_stock}.")
    return confirmation


def _restore_stock(client, request: NewOrderRequest, log_prefix: str):
    """
    Compensation: gives the decremented units back to the inventory record.
    A failure here leaves stock decremented without an order and needs manual reconciliation.
    """
    log.info(f"{log_prefix} Compensation: restoring {request.quantity} unit(s).")
    try:
        client.execute(queries.RESTORE_STOCK, [request.quantity, request.productId])
        log.info(f"{log_prefix} Compensation successful.")
    except QueryError as e:
        log.critical(
            f"{log_prefix} COMPENSATION FAILED: stock decremented by {request.quantity} "
            f"without an order ({e}). MANUAL RECONCILIATION REQUIRED!"
        )


def _read_int(row: dict, key: str) -> int:
    value = row.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ResponseParseError(f"{key} missing or not an integer: {value!r}")
    try:
        return int(value)
    except ValueError as e:
        raise ResponseParseError(f"{key} is not an integer: {value!r}") from e


def _as_text(value):
    return None if value is None else str(value)
