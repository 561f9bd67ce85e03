"""
catalog.py — Read-only product and inventory queries
"""

import logging
from typing import List

from pydantic import ValidationError

from . import queries
from .errors import DatabaseError, ProductNotFound, QueryError, ResponseParseError
from .models import ProductListing

log = logging.getLogger(__name__)


def _to_listing(row: dict) -> ProductListing:
    try:
        return ProductListing.model_validate(row)
    except ValidationError as e:
        raise ResponseParseError(f"malformed product row {row.get('id')!r}: {e.errors()[0]['msg']}") from e


def list_products(client) -> List[ProductListing]:
    """
    Lists every product with its stock. Products without an inventory record report 0 (sold out).

    Raises:
        DatabaseError: If the store call fails or its reply is malformed.
    """
    try:
        result = client.execute(queries.LIST_PRODUCTS)
    except QueryError as e:
        log.error(f"Listing products failed: {e}")
        raise DatabaseError("list_products", e) from e

    products = []
    for row in result.rows:
        try:
            products.append(_to_listing(row))
        except ResponseParseError as e:
            # One bad row hides that product only.
            log.warning(f"Skipping product row: {e}")
    return products


def get_product_with_inventory(client, product_id) -> ProductListing:
    """
    Fetches a single product joined with its inventory record.

    Raises:
        ProductNotFound: If no product has this identifier.
        DatabaseError: If the store call fails or returns a malformed row.
    """
    try:
        result = client.execute(queries.PRODUCT_WITH_INVENTORY, [product_id])
        row = result.first()
        if row is None:
            raise ProductNotFound(product_id)
        return _to_listing(row)
    except QueryError as e:
        log.error(f"Fetching product {product_id} failed: {e}")
        raise DatabaseError("fetch_product", e) from e
