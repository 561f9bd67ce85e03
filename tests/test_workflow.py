"""Tests for the order placement transaction.

Uses the in-memory fake query client — no HTTP.
"""

import pytest

from orders_api import queries
from orders_api.errors import (
    DatabaseError,
    InsufficientStock,
    InvalidRequest,
    ProductNotFound,
    QueryNotExecuted,
    ResponseParseError,
    TransportError,
)
from orders_api.workflow import place_order
from tests.fakes import ALBUM, POSTER, make_client

MUTATIONS = {queries.DECREMENT_STOCK, queries.RESTORE_STOCK, queries.INSERT_ORDER}


class TestPlaceOrderHappyPath:

    def test_scenario_kim_orders_three_albums(self):
        client = make_client(stock={1: 50})
        confirmation = place_order(client, "Kim", 1, 3)
        assert confirmation.totalPrice == 75000
        assert confirmation.remainingStock == 47
        assert confirmation.customerName == "Kim"
        assert confirmation.productTitle == "Ellie 'Multiverse' Official Album"
        assert confirmation.quantity == 3

    def test_total_is_unit_price_times_quantity(self):
        client = make_client(products=[ALBUM, POSTER], stock={1: 50, 2: 20})
        for product_id, quantity in [(1, 1), (1, 7), (2, 4)]:
            confirmation = place_order(client, "Kim", product_id, quantity)
            assert confirmation.totalPrice == confirmation.unitPrice * quantity

    def test_records_order_in_store(self):
        client = make_client()
        confirmation = place_order(client, "Kim", 1, 2)
        stored = client.store.orders[0]
        assert stored["id"] == confirmation.id
        assert stored["customer_name"] == "Kim"
        assert stored["quantity"] == 2
        assert stored["unit_price"] == 25000
        assert stored["total_price"] == 50000
        assert confirmation.orderDate == stored["order_date"]

    def test_decrements_stock(self):
        client = make_client(stock={1: 10})
        place_order(client, "Kim", 1, 4)
        assert client.store.stock_of(1) == 6

    def test_calls_are_sequential_and_minimal(self):
        client = make_client()
        place_order(client, "Kim", 1, 1)
        assert client.queries_issued() == [
            queries.PRODUCT_WITH_INVENTORY,
            queries.DECREMENT_STOCK,
            queries.INSERT_ORDER,
        ]

    def test_ordering_entire_stock_leaves_zero(self):
        client = make_client(stock={1: 3})
        confirmation = place_order(client, "Kim", 1, 3)
        assert confirmation.remainingStock == 0

    def test_string_product_id_accepted(self):
        client = make_client()
        confirmation = place_order(client, "Kim", "1", 1)
        assert confirmation.totalPrice == 25000

    def test_price_captured_at_order_time(self):
        client = make_client()
        confirmation = place_order(client, "Kim", 1, 1)
        client.store.products[1]["price_numeric"] = 99000
        assert client.store.orders[0]["unit_price"] == 25000
        assert confirmation.unitPrice == 25000


class TestPlaceOrderValidation:

    @pytest.mark.parametrize("customer_name, product_id, quantity", [
        ("", 1, 1),
        ("   ", 1, 1),
        (None, 1, 1),
        ("Kim", None, 1),
        ("Kim", "", 1),
        ("Kim", 1, 0),
        ("Kim", 1, -2),
        ("Kim", 1, None),
        ("Kim", 1, 1.5),
        ("Kim", 1, "3"),
        ("Kim", 1, True),
        ("Kim", True, 1),
    ])
    def test_invalid_input_issues_no_store_calls(self, customer_name, product_id, quantity):
        client = make_client()
        with pytest.raises(InvalidRequest):
            place_order(client, customer_name, product_id, quantity)
        assert client.calls == []

    def test_scenario_empty_customer_name(self):
        client = make_client()
        with pytest.raises(InvalidRequest) as exc:
            place_order(client, "", 1, 1)
        assert exc.value.status_code == 400
        assert client.calls == []


class TestPlaceOrderRejections:

    def test_scenario_lee_insufficient_stock(self):
        client = make_client(stock={1: 2})
        with pytest.raises(InsufficientStock) as exc:
            place_order(client, "Lee", 1, 5)
        assert "2" in exc.value.message
        assert exc.value.current_stock == 2
        assert client.store.stock_of(1) == 2
        assert queries.DECREMENT_STOCK not in client.queries_issued()

    def test_product_without_inventory_record_is_out_of_stock(self):
        client = make_client(products=[POSTER], stock={})
        with pytest.raises(InsufficientStock) as exc:
            place_order(client, "Lee", 2, 1)
        assert exc.value.current_stock == 0
        assert client.store.orders == []

    def test_scenario_park_unknown_product(self):
        client = make_client()
        with pytest.raises(ProductNotFound) as exc:
            place_order(client, "Park", 999, 1)
        assert exc.value.status_code == 404
        assert client.queries_issued() == [queries.PRODUCT_WITH_INVENTORY]

    def test_lost_race_on_decrement_is_insufficient_stock(self):
        client = make_client(stock={1: 5})
        # Another order drained the stock after the read: the conditional update matches nothing.
        client.reply_with(queries.DECREMENT_STOCK, {"rows": [], "rowCount": 0})
        with pytest.raises(InsufficientStock):
            place_order(client, "Kim", 1, 3)
        assert queries.INSERT_ORDER not in client.queries_issued()
        assert client.store.orders == []


class TestPlaceOrderStoreFailures:

    def test_fetch_failure_is_database_error(self):
        client = make_client()
        client.fail_on(queries.PRODUCT_WITH_INVENTORY, TransportError("connection refused"))
        with pytest.raises(DatabaseError) as exc:
            place_order(client, "Kim", 1, 1)
        assert exc.value.step == "fetch_product"
        assert exc.value.status_code == 500
        assert not MUTATIONS & set(client.queries_issued())
        assert client.store.stock_of(1) == 50
        assert client.store.orders == []

    def test_decrement_failure_creates_no_order(self):
        client = make_client()
        client.fail_on(queries.DECREMENT_STOCK, TransportError("timeout"))
        with pytest.raises(DatabaseError) as exc:
            place_order(client, "Kim", 1, 1)
        assert exc.value.step == "decrement_stock"
        assert queries.INSERT_ORDER not in client.queries_issued()
        assert client.store.orders == []
        assert client.store.stock_of(1) == 50

    def test_insert_not_executed_restores_stock(self):
        client = make_client(stock={1: 50})
        client.fail_on(queries.INSERT_ORDER, QueryNotExecuted("connection refused"))
        with pytest.raises(DatabaseError) as exc:
            place_order(client, "Kim", 1, 3)
        assert exc.value.step == "insert_order"
        assert "connection refused" in exc.value.message
        assert client.queries_issued()[-1] == queries.RESTORE_STOCK
        assert client.store.stock_of(1) == 50
        assert client.store.orders == []

    def test_insert_saved_but_reply_lost_keeps_decrement(self, caplog):
        client = make_client(stock={1: 50})
        client.fail_after(queries.INSERT_ORDER, TransportError("query proxy reply lost: ReadTimeout"))
        with pytest.raises(DatabaseError) as exc:
            place_order(client, "Kim", 1, 3)
        assert exc.value.step == "insert_order"
        assert queries.RESTORE_STOCK not in client.queries_issued()
        assert len(client.store.orders) == 1
        assert client.store.orders[0]["quantity"] == 3
        assert client.store.stock_of(1) == 47
        assert any(record.levelname == "CRITICAL" for record in caplog.records)

    def test_insert_saved_but_reply_malformed_keeps_decrement(self):
        client = make_client(stock={1: 50})
        client.fail_after(queries.INSERT_ORDER, ResponseParseError("query proxy reply is not JSON"))
        with pytest.raises(DatabaseError):
            place_order(client, "Kim", 1, 3)
        assert queries.RESTORE_STOCK not in client.queries_issued()
        assert len(client.store.orders) == 1
        assert client.store.stock_of(1) == 47

    def test_insert_returning_no_row_is_not_compensated(self):
        client = make_client(stock={1: 50})
        client.reply_with(queries.INSERT_ORDER, {"rows": [], "rowCount": 0})
        with pytest.raises(DatabaseError):
            place_order(client, "Kim", 1, 3)
        assert queries.RESTORE_STOCK not in client.queries_issued()
        assert client.store.orders == []
        assert client.store.stock_of(1) == 47

    def test_failed_compensation_still_reports_insert_failure(self, caplog):
        client = make_client(stock={1: 50})
        client.fail_on(queries.INSERT_ORDER, QueryNotExecuted("connection refused"))
        client.fail_on(queries.RESTORE_STOCK, TransportError("connection reset"))
        with pytest.raises(DatabaseError) as exc:
            place_order(client, "Kim", 1, 3)
        assert exc.value.step == "insert_order"
        assert client.store.orders == []
        assert client.store.stock_of(1) == 47
        assert any(record.levelname == "CRITICAL" for record in caplog.records)

    def test_decrement_reply_lost_is_not_compensated(self):
        client = make_client(stock={1: 50})
        client.fail_after(queries.DECREMENT_STOCK, TransportError("query proxy reply lost: ReadTimeout"))
        with pytest.raises(DatabaseError) as exc:
            place_order(client, "Kim", 1, 3)
        assert exc.value.step == "decrement_stock"
        assert queries.INSERT_ORDER not in client.queries_issued()
        assert queries.RESTORE_STOCK not in client.queries_issued()
        assert client.store.orders == []
        assert client.store.stock_of(1) == 47

    def test_unreadable_remaining_stock_restores_stock(self):
        client = make_client(stock={1: 50})
        client.reply_with(queries.DECREMENT_STOCK, {"rows": [{"stock_quantity": "n/a"}]})
        with pytest.raises(DatabaseError) as exc:
            place_order(client, "Kim", 1, 3)
        assert exc.value.step == "decrement_stock"
        assert queries.INSERT_ORDER not in client.queries_issued()
        assert client.queries_issued()[-1] == queries.RESTORE_STOCK
        assert client.store.orders == []
