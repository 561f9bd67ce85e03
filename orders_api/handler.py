"""
handler.py — Function entry point and request router

handle_request() receives the request descriptor of an HTTP-triggered function
invocation, maps (method, path) to a service operation, and turns the result or
the raised OrdersApiError into a {statusCode, headers, body} response.
handle_order_post() is the entry point of the POST-only order function: every
path places an order.

Request descriptor keys:
    httpMethod / method, path / resource, pathParameters,
    queryStringParameters, body (JSON string or already-parsed object)
"""

import json
import logging
import os
import re
import sys
from datetime import datetime, timezone
from urllib.parse import unquote

from . import admin, catalog, order_history, workflow
from .clients import QueryClient
from .errors import DatabaseError, InvalidRequest, MethodNotAllowed, OrdersApiError, QueryError, RouteNotFound

API_PREFIX = "/api/orders"
SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE")

FUNCTION_NAME = os.environ.get("FUNCTION_NAME", "orders")
ORDER_POST_FUNCTION_NAME = os.environ.get("ORDER_POST_FUNCTION_NAME", "orders-post")
FUNCTION_PLATFORM = os.environ.get("FUNCTION_PLATFORM", "samsung-cloud-platform")
FUNCTION_REGION = os.environ.get("FUNCTION_REGION", "kr-west1")

JSON_HEADERS = {"Content-Type": "application/json"}
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
}

log = logging.getLogger(__name__)


# --- Operations ---

def _get_products(client, args, request):
    products = catalog.list_products(client)
    return {
        "products": [product.to_payload() for product in products],
        "server_info": _server_info(request, products_count=len(products)),
    }


def _get_product_inventory(client, args, request):
    product = catalog.get_product_with_inventory(client, args["productId"])
    return {"product": product.to_payload()}


def _create_order(client, args, request):
    body = _parse_body(request)
    confirmation = workflow.place_order(
        client,
        body.get("customerName"),
        body.get("productId"),
        body.get("quantity"),
    )
    return {
        "message": "주문이 성공적으로 완료되었습니다.",
        "order": confirmation.model_dump(mode="json"),
        "server_info": _server_info(request),
    }


def _get_order_list(client, args, request):
    raw_limit = request["query"].get("limit")
    limit = order_history.DEFAULT_ORDER_LIMIT
    if raw_limit not in (None, ""):
        try:
            limit = int(raw_limit)
        except (TypeError, ValueError) as e:
            raise InvalidRequest(f"limit must be an integer, got {raw_limit!r}") from e
    orders = order_history.list_orders(client, limit)
    return {"orders": [order.model_dump(mode="json") for order in orders]}


def _get_customer_orders(client, args, request):
    orders = order_history.list_orders_for_customer(client, args["customerName"])
    return {"orders": [order.model_dump(mode="json") for order in orders]}


def _reset_inventory(client, args, request):
    affected = admin.reset_inventory(client)
    return {
        "message": f"모든 상품의 재고가 {admin.RESET_STOCK_QUANTITY}개로 리셋되었습니다.",
        "affectedRows": affected,
    }


def _not_implemented(operation):
    def _stub(client, args, request):
        admin.not_implemented(operation)
    return _stub


ROUTES = {
    "GET": [
        (r"(/products)?", _get_products),
        (r"/products/(?P<productId>[^/]+)/inventory", _get_product_inventory),
        (r"/list", _get_order_list),
        (r"/customer/(?P<customerName>[^/]+)", _get_customer_orders),
        (r"/admin/products", _not_implemented("get_admin_products")),
        (r"/admin/inventory", _not_implemented("get_admin_inventory")),
    ],
    "POST": [
        (r"/create", _create_order),
        (r"/admin/reset-inventory", _reset_inventory),
        (r"/admin/products", _not_implemented("create_product")),
        (r"/admin/inventory/(?P<productId>[^/]+)/add", _not_implemented("add_inventory")),
    ],
    "PUT": [
        (r"/admin/products/(?P<id>[^/]+)", _not_implemented("update_product")),
    ],
    "DELETE": [
        (r"/admin/products/(?P<id>[^/]+)", _not_implemented("delete_product")),
        (r"/admin/orders/(?P<id>[^/]+)", _not_implemented("delete_order")),
    ],
}


# --- Entry points ---

def handle_request(params: dict, client=None) -> dict:
    """
    Handles one invocation of the orders function (all /api/orders routes).

    Args:
        params (dict): The request descriptor.
        client: Query executor to use. A QueryClient is opened (and closed) per invocation when omitted.

    Returns:
        dict: statusCode, headers and a JSON-encoded body.
    """
    method = (params.get("httpMethod") or params.get("method") or "GET").upper()
    path = params.get("path") or params.get("resource") or "/"
    log.info(f"Request received: {method} {path}")

    def resolve():
        return _resolve(method, path, params.get("pathParameters") or {})

    return _dispatch(method, path, resolve, params, client, FUNCTION_NAME)


def handle_order_post(params: dict, client=None) -> dict:
    """
    Handles one invocation of the order-post function, which only places orders.

    Any path is accepted; any method other than POST answers 405.

    Args:
        params (dict): The request descriptor.
        client: Query executor to use. A QueryClient is opened (and closed) per invocation when omitted.

    Returns:
        dict: statusCode, headers and a JSON-encoded body.
    """
    method = (params.get("httpMethod") or params.get("method") or "POST").upper()
    path = params.get("path") or params.get("resource") or "/"
    log.info(f"Order request received: {method} {path}")

    def resolve():
        if method != "POST":
            raise MethodNotAllowed(method)
        return _create_order, {}

    return _dispatch(method, path, resolve, params, client, ORDER_POST_FUNCTION_NAME)


def _dispatch(method, path, resolve, params, client, function_name) -> dict:
    try:
        operation, args = resolve()
        request = {
            "query": params.get("queryStringParameters") or {},
            "body": params.get("body") or "",
            "function": function_name,
        }
        if client is not None:
            payload = operation(client, args, request)
        else:
            with QueryClient() as owned_client:
                payload = operation(owned_client, args, request)
    except OrdersApiError as e:
        return _error_response(e)
    except Exception as e:
        log.critical(f"Unhandled error for {method} {path}: {e}", exc_info=True)
        return _response(500, {"success": False, "message": "Internal server error", "error": str(e)})

    return _response(200, {"success": True, **payload}, cors=True)


def _resolve(method: str, path: str, path_parameters: dict):
    """Matches a percent-encoded path against ROUTES; path segments are decoded once here."""
    if method not in SUPPORTED_METHODS:
        raise MethodNotAllowed(method)

    api_path = path[len(API_PREFIX):] if path.startswith(API_PREFIX) else path
    api_path = api_path.rstrip("/")

    for pattern, operation in ROUTES[method]:
        match = re.fullmatch(pattern, api_path)
        if match:
            args = {key: unquote(value) for key, value in match.groupdict().items() if value is not None}
            args.update({key: value for key, value in path_parameters.items() if key in args})
            return operation, args

    raise RouteNotFound(method, path)


def _parse_body(request) -> dict:
    body = request["body"]
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8")
    if isinstance(body, str):
        if not body.strip():
            body = {}
        else:
            try:
                body = json.loads(body)
            except ValueError as e:
                raise InvalidRequest(f"Request body is not valid JSON: {e}") from e
    if not isinstance(body, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return body


def _server_info(request, **extra) -> dict:
    info = {
        "function": request.get("function", FUNCTION_NAME),
        "runtime": f"python{sys.version_info.major}.{sys.version_info.minor}",
        "platform": FUNCTION_PLATFORM,
        "region": FUNCTION_REGION,
        "response_time": datetime.now(timezone.utc).isoformat(),
    }
    info.update(extra)
    return info


def _error_response(error: OrdersApiError) -> dict:
    body = {"success": False, "message": error.message}
    if isinstance(error, (DatabaseError, QueryError)):
        log.error(f"Store failure: {error.message}")
        body = {"success": False, "message": "Database error", "error": error.message}
    elif error.status_code >= 500:
        log.error(f"Request failed with {error.status_code}: {error.message}")
    else:
        log.info(f"Request rejected with {error.status_code}: {error.message}")
    return _response(error.status_code, body)


def _response(status_code: int, body: dict, cors: bool = False) -> dict:
    headers = dict(JSON_HEADERS)
    if cors:
        headers.update(CORS_HEADERS)
    return {
        "statusCode": status_code,
        "headers": headers,
        "body": json.dumps(body, ensure_ascii=False),
    }
