"""
order_history.py — Read-only order listings

Orders are joined with their product at read time; quantities, prices,
timestamps and status are returned as stored.
"""

import logging
from typing import List

from pydantic import ValidationError

from . import queries
from .errors import DatabaseError, InvalidRequest, QueryError, ResponseParseError
from .models import OrderSummary

DEFAULT_ORDER_LIMIT = 100
MAX_ORDER_LIMIT = 1000

log = logging.getLogger(__name__)


def _to_summaries(rows) -> List[OrderSummary]:
    try:
        return [OrderSummary.model_validate(row) for row in rows]
    except ValidationError as e:
        raise ResponseParseError(f"malformed order row: {e.errors()[0]['msg']}") from e


def list_orders(client, limit=DEFAULT_ORDER_LIMIT) -> List[OrderSummary]:
    """
    Lists the most recent orders, newest first.

    Raises:
        InvalidRequest: If limit is not an integer between 1 and MAX_ORDER_LIMIT.
        DatabaseError: If the store call fails.
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_ORDER_LIMIT:
        raise InvalidRequest(f"limit must be an integer between 1 and {MAX_ORDER_LIMIT}")
    try:
        result = client.execute(queries.LIST_ORDERS, [limit])
        return _to_summaries(result.rows)
    except QueryError as e:
        log.error(f"Listing orders failed: {e}")
        raise DatabaseError("list_orders", e) from e


def list_orders_for_customer(client, customer_name) -> List[OrderSummary]:
    """Lists all orders of one customer, newest first."""
    if not isinstance(customer_name, str) or not customer_name.strip():
        raise InvalidRequest("customer name is required")
    try:
        result = client.execute(queries.CUSTOMER_ORDERS, [customer_name])
        return _to_summaries(result.rows)
    except QueryError as e:
        log.error(f"Listing orders of {customer_name!r} failed: {e}")
        raise DatabaseError("list_customer_orders", e) from e
