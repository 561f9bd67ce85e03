"""End-to-end tests: FastAPI app -> request router -> QueryClient -> mock query proxy.

The query client talks HTTP to the mock proxy app through a TestClient, so the
form-encoded wire format and basic auth are exercised too.
"""

import logging

import httpx
import pytest
from fastapi.testclient import TestClient

from mock_services.mock_query_proxy import InMemoryStore, create_app
from orders_api.clients import QueryClient
from orders_api.main import app, get_query_client
from tests.fakes import ALBUM, POSTER


@pytest.fixture
def store():
    return InMemoryStore(products=[ALBUM, POSTER], stock={1: 50, 2: 2})


@pytest.fixture
def api(store):
    proxy = TestClient(create_app(store))

    def query_client_override():
        yield QueryClient(http_client=proxy)

    app.dependency_overrides[get_query_client] = query_client_override
    yield TestClient(app)
    app.dependency_overrides.clear()
    proxy.close()


class TestOrdersApiEndToEnd:

    def test_health(self, api):
        assert api.get("/health").json() == {"status": "ok"}

    def test_list_products(self, api):
        response = api.get("/api/orders/products")
        assert response.status_code == 200
        body = response.json()
        assert [p["title"] for p in body["products"]] == [ALBUM["title"], POSTER["title"]]
        assert body["products"][0]["stock_display"] == "50"

    def test_place_order_and_list_it(self, api, store):
        response = api.post("/api/orders/create", json={"customerName": "Kim", "productId": 1, "quantity": 3})
        assert response.status_code == 200
        order = response.json()["order"]
        assert order["totalPrice"] == 75000
        assert order["remainingStock"] == 47
        assert store.stock_of(1) == 47

        orders = api.get("/api/orders/customer/Kim").json()["orders"]
        assert len(orders) == 1
        assert orders[0]["total_price"] == 75000
        assert orders[0]["unit_price"] * orders[0]["quantity"] == orders[0]["total_price"]

    def test_insufficient_stock(self, api, store):
        response = api.post("/api/orders/create", json={"customerName": "Lee", "productId": 2, "quantity": 5})
        assert response.status_code == 400
        assert "2" in response.json()["message"]
        assert store.stock_of(2) == 2
        assert store.orders == []

    def test_unknown_product(self, api, store):
        response = api.post("/api/orders/create", json={"customerName": "Park", "productId": 999, "quantity": 1})
        assert response.status_code == 404
        assert store.orders == []

    def test_malformed_json(self, api):
        response = api.post(
            "/api/orders/create", content=b"{oops", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400

    def test_reset_inventory(self, api, store):
        api.post("/api/orders/create", json={"customerName": "Kim", "productId": 1, "quantity": 3})
        response = api.post("/api/orders/admin/reset-inventory")
        assert response.status_code == 200
        assert response.json()["affectedRows"] == 2
        assert store.stock_of(1) == 100

    def test_customer_name_decoded_once(self, api, store):
        for name in ("50%20off", "AC/DC"):
            response = api.post("/api/orders/create", json={"customerName": name, "productId": 1, "quantity": 1})
            assert response.status_code == 200

        literal = api.get("/api/orders/customer/50%2520off").json()["orders"]
        assert [o["customer_name"] for o in literal] == ["50%20off"]
        slashed = api.get("/api/orders/customer/AC%2FDC").json()["orders"]
        assert [o["customer_name"] for o in slashed] == ["AC/DC"]

    def test_not_implemented(self, api):
        assert api.delete("/api/orders/admin/orders/1").status_code == 501

    def test_method_not_allowed(self, api):
        assert api.patch("/api/orders/products").status_code == 405


class TestProxyFailures:

    def test_wrong_credentials_surface_as_database_error(self, store):
        proxy = TestClient(create_app(store))

        def query_client_override():
            client = QueryClient(http_client=proxy)
            client.auth = httpx.BasicAuth("intruder", "wrong")
            yield client

        app.dependency_overrides[get_query_client] = query_client_override
        try:
            response = TestClient(app).get("/api/orders/products")
        finally:
            app.dependency_overrides.clear()
        assert response.status_code == 500
        assert response.json()["message"] == "Database error"
        assert "401" in response.json()["error"]


class TestLifespan:

    def test_startup_and_shutdown_are_logged(self, caplog):
        with caplog.at_level(logging.INFO, logger="orders_api.main"):
            with TestClient(app) as client:
                assert client.get("/health").status_code == 200
        messages = [record.getMessage() for record in caplog.records]
        assert "Orders API starting..." in messages
        assert "Orders API shutting down." in messages
