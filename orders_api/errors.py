"""
errors.py — Error taxonomy of the Orders API

Every failure the services raise derives from OrdersApiError and carries the
HTTP status code the router answers with. Validation errors are raised before
any store call; store failures are wrapped in DatabaseError with the name of
the step that failed.
"""


class OrdersApiError(Exception):
    """Base class for all errors that map to an HTTP response."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(OrdersApiError):
    status_code = 400


class ProductNotFound(OrdersApiError):
    status_code = 404

    def __init__(self, product_id, message: str = "상품을 찾을 수 없습니다."):
        super().__init__(message)
        self.product_id = product_id


class InsufficientStock(OrdersApiError):
    """Requested quantity exceeds the stock on hand. The message reports the current stock."""
    status_code = 400

    def __init__(self, current_stock: int):
        super().__init__(f"재고가 부족합니다. (현재 재고: {current_stock}개)")
        self.current_stock = current_stock


class QueryError(OrdersApiError):
    """Raised by the query client when a round trip to the proxy fails."""


class TransportError(QueryError):
    """The request to the query proxy could not complete (connect, timeout, TLS, HTTP status)."""


class QueryNotExecuted(TransportError):
    """
    The statement certainly did not run: the connection was never established or the
    proxy rejected the request with an error status. Other transport failures (read
    timeouts, dropped connections) leave the outcome unknown.
    """


class ResponseParseError(QueryError):
    """The query proxy answered with something that is not a well-formed result."""


class DatabaseError(OrdersApiError):
    """
    A store call failed during a service step.

    Attributes:
        step (str): Name of the step that failed, e.g. "decrement_stock".
        cause (Exception): The underlying QueryError.
    """

    def __init__(self, step: str, cause: Exception):
        super().__init__(f"{step} failed: {cause}")
        self.step = step
        self.cause = cause


class MethodNotAllowed(OrdersApiError):
    status_code = 405

    def __init__(self, method: str):
        super().__init__("Method not allowed")
        self.method = method


class RouteNotFound(OrdersApiError):
    status_code = 404

    def __init__(self, method: str, path: str):
        super().__init__("Route not found")
        self.method = method
        self.path = path


class OperationNotImplemented(OrdersApiError):
    status_code = 501

    def __init__(self, operation: str):
        super().__init__("Not implemented")
        self.operation = operation
