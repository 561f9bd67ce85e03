"""
admin.py — Administrative operations

Only the inventory reset has real logic. Product CRUD, manual stock additions and
order deletion are part of the public surface but answer "not implemented".
"""

import logging
import os

from . import queries
from .errors import DatabaseError, OperationNotImplemented, QueryError

RESET_STOCK_QUANTITY = int(os.environ.get("RESET_STOCK_QUANTITY", "100"))

log = logging.getLogger(__name__)


def reset_inventory(client, stock_quantity: int = RESET_STOCK_QUANTITY) -> int:
    """
    Sets every inventory record to a fixed stock and clears the reserved quantity.

    Returns:
        int: Number of inventory records updated.

    Raises:
        DatabaseError: If the store call fails.
    """
    log.info(f"Resetting all inventory records to {stock_quantity} unit(s).")
    try:
        result = client.execute(queries.RESET_INVENTORY, [stock_quantity])
    except QueryError as e:
        log.error(f"Inventory reset failed: {e}")
        raise DatabaseError("reset_inventory", e) from e
    log.info(f"Inventory reset done, {result.row_count} record(s) updated.")
    return result.row_count


def not_implemented(operation: str):
    """Stub for administrative operations without an implementation."""
    log.info(f"Administrative operation '{operation}' requested but not implemented.")
    raise OperationNotImplemented(operation)
