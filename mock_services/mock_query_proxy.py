"""
mock_query_proxy.py — Mock Implementation of the Query Proxy (REST API)

This module provides a simulated query proxy for local runs and tests of the Orders
API. It exposes the same endpoint as the real proxy and serves the statements the
service sends from an in-memory store, so the order workflow can be exercised
without a database.

Simulation:
    • Products, inventory records and orders kept in dicts
    • Every statement from orders_api.queries recognized by its exact text
    • Conditional stock decrement that refuses to go negative
    • Unknown statements answered with HTTP 400

Endpoints:
    POST /api/query — form fields `query` and `params` (JSON array), HTTP Basic auth.

Port:
    Default: 2866 (HTTP)
"""

import copy
import json
import logging
import os
import secrets
from datetime import datetime, timezone
from urllib.parse import parse_qs

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from orders_api import queries

logging.basicConfig(level=logging.INFO)
log = logging.getLogger(__name__)

PROXY_USER = os.environ.get("QUERY_PROXY_USER", "cedbadmin")
PROXY_PASSWORD = os.environ.get("QUERY_PROXY_PASSWORD", "cedbadmin123!")

SEED_PRODUCTS = [
    {
        "id": 1,
        "title": "Ellie 'Multiverse' Official Album",
        "subtitle": "1st Full Album - Limited Edition",
        "price": "₩25,000",
        "price_numeric": 25000,
        "image": "media/img/ellie-album.jpg",
        "category": "음반",
        "type": "album",
        "badge": "HOT",
    },
]
SEED_STOCK = {1: 50}


class UnsupportedQuery(ValueError):
    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _key(value):
    """Product ids arrive as bind values and may be ints or numeric strings."""
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


class InMemoryStore:
    """
    In-memory products/inventory/orders tables answering the service's statements.

    Args:
        products (list[dict], optional): Product rows. Defaults to SEED_PRODUCTS.
        stock (dict, optional): product id -> stock quantity. Products missing here
            have no inventory record. Defaults to SEED_STOCK.
    """

    def __init__(self, products=None, stock=None):
        products = SEED_PRODUCTS if products is None else products
        stock = SEED_STOCK if stock is None else stock
        self.products = {p["id"]: copy.deepcopy(p) for p in products}
        self.inventory = {
            product_id: {
                "product_id": product_id,
                "stock_quantity": quantity,
                "reserved_quantity": 0,
                "updated_at": _now(),
            }
            for product_id, quantity in stock.items()
        }
        self.orders = []
        self._next_order_id = 1
        self._statements = {
            queries.LIST_PRODUCTS: self._list_products,
            queries.PRODUCT_WITH_INVENTORY: self._product_with_inventory,
            queries.DECREMENT_STOCK: self._decrement_stock,
            queries.RESTORE_STOCK: self._restore_stock,
            queries.INSERT_ORDER: self._insert_order,
            queries.LIST_ORDERS: self._list_orders,
            queries.CUSTOMER_ORDERS: self._customer_orders,
            queries.RESET_INVENTORY: self._reset_inventory,
        }

    def execute(self, query: str, params=()) -> dict:
        """
        Runs one statement.

        Returns:
            dict: {"rows": [...], "rowCount": n}, the proxy's reply shape.

        Raises:
            UnsupportedQuery: If the statement is not one the service sends.
        """
        statement = self._statements.get(query)
        if statement is None:
            raise UnsupportedQuery(f"unsupported statement: {query.strip()[:60]!r}")
        rows, row_count = statement(*params)
        return {"rows": rows, "rowCount": row_count}

    def stock_of(self, product_id):
        record = self.inventory.get(_key(product_id))
        return None if record is None else record["stock_quantity"]

    # --- Statements ---

    def _product_row(self, product):
        record = self.inventory.get(product["id"])
        row = dict(product)
        row["stock_quantity"] = record["stock_quantity"] if record else 0
        row["reserved_quantity"] = record["reserved_quantity"] if record else 0
        row["updated_at"] = record["updated_at"] if record else None
        return row

    def _list_products(self):
        ordered_ids = sorted(self.products, key=lambda pid: (isinstance(pid, str), pid))
        rows = [self._product_row(self.products[pid]) for pid in ordered_ids]
        return rows, len(rows)

    def _product_with_inventory(self, product_id):
        product = self.products.get(_key(product_id))
        rows = [self._product_row(product)] if product else []
        return rows, len(rows)

    def _decrement_stock(self, quantity, product_id):
        record = self.inventory.get(_key(product_id))
        if record is None or record["stock_quantity"] < quantity:
            return [], 0
        record["stock_quantity"] -= quantity
        record["updated_at"] = _now()
        return [{"stock_quantity": record["stock_quantity"]}], 1

    def _restore_stock(self, quantity, product_id):
        record = self.inventory.get(_key(product_id))
        if record is None:
            return [], 0
        record["stock_quantity"] += quantity
        record["updated_at"] = _now()
        return [{"stock_quantity": record["stock_quantity"]}], 1

    def _insert_order(self, customer_name, product_id, quantity, unit_price, total_price):
        order = {
            "id": self._next_order_id,
            "customer_name": customer_name,
            "product_id": _key(product_id),
            "quantity": quantity,
            "unit_price": unit_price,
            "total_price": total_price,
            "order_date": _now(),
            "status": "completed",
        }
        self._next_order_id += 1
        self.orders.append(order)
        return [{"id": order["id"], "order_date": order["order_date"]}], 1

    def _order_row(self, order):
        product = self.products.get(order["product_id"], {})
        return {
            "id": order["id"],
            "customer_name": order["customer_name"],
            "product_title": product.get("title"),
            "product_subtitle": product.get("subtitle"),
            "price": product.get("price"),
            "quantity": order["quantity"],
            "unit_price": order["unit_price"],
            "total_price": order["total_price"],
            "order_date": order["order_date"],
            "status": order["status"],
        }

    def _newest_first(self, orders):
        # Inner join: orders of unknown products are not listed.
        joined = [o for o in orders if o["product_id"] in self.products]
        return [self._order_row(o) for o in sorted(joined, key=lambda o: (o["order_date"], o["id"]), reverse=True)]

    def _list_orders(self, limit):
        rows = self._newest_first(self.orders)[:limit]
        return rows, len(rows)

    def _customer_orders(self, customer_name):
        rows = self._newest_first([o for o in self.orders if o["customer_name"] == customer_name])
        return rows, len(rows)

    def _reset_inventory(self, stock_quantity):
        for record in self.inventory.values():
            record["stock_quantity"] = stock_quantity
            record["reserved_quantity"] = 0
            record["updated_at"] = _now()
        return [], len(self.inventory)


def create_app(store: InMemoryStore = None) -> FastAPI:
    """
    Builds the mock proxy application around a store (a freshly seeded one by default).
    """
    app = FastAPI(title="Mock Query Proxy")
    app.state.store = store if store is not None else InMemoryStore()
    security = HTTPBasic()

    def check_credentials(credentials: HTTPBasicCredentials = Depends(security)):
        valid_user = secrets.compare_digest(credentials.username, PROXY_USER)
        valid_password = secrets.compare_digest(credentials.password, PROXY_PASSWORD)
        if not (valid_user and valid_password):
            raise HTTPException(status_code=401, detail="invalid credentials")

    @app.post("/api/query", dependencies=[Depends(check_credentials)])
    async def run_query(request: Request):
        """
        Executes one statement against the in-memory store.

        Returns:
            dict: rows and rowCount.

        Raises:
            HTTPException(400): If the form is incomplete, params is not a JSON array,
                or the statement is unknown.
        """
        form = parse_qs((await request.body()).decode("utf-8"))
        query = form.get("query", [""])[0]
        try:
            params = json.loads(form.get("params", ["[]"])[0])
        except ValueError:
            raise HTTPException(status_code=400, detail={"error": "params is not valid JSON"})
        if not query or not isinstance(params, list):
            raise HTTPException(status_code=400, detail={"error": "query and params array are required"})

        try:
            result = app.state.store.execute(query, params)
        except (UnsupportedQuery, TypeError) as e:
            log.warning(f"[PROXY] Rejected statement: {e}")
            raise HTTPException(status_code=400, detail={"error": str(e)})

        log.info(f"[PROXY] Statement served, {result['rowCount']} row(s).")
        return result

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=2866)
