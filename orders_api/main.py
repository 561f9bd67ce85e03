"""
main.py — FastAPI Entry Point for the Orders API

This module serves the same operations as the function entry point
(handler.handle_request) over a regular HTTP server. Each request is turned into
a request descriptor and routed by the handler, so the order transaction and the
routing rules exist exactly once.

Responsibilities:
    • Accept /api/orders/* requests and delegate them to the request router
    • Open one query client per request
    • Answer CORS preflight requests
    • Provide system health information
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from .clients import QueryClient
from .handler import API_PREFIX, handle_request
from .logging_config import get_logger, setup_logging

setup_logging()
log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("Orders API starting...")
    yield
    log.info("Orders API shutting down.")


app = FastAPI(title="Orders API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)


def get_query_client():
    """
    FastAPI dependency yielding a query client for the duration of one request.
    """
    client = QueryClient()
    try:
        yield client
    finally:
        client.close()


@app.api_route(API_PREFIX, methods=["GET", "POST", "PUT", "DELETE", "PATCH"])
@app.api_route(API_PREFIX + "/{api_path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH"])
async def orders_api(request: Request, client: QueryClient = Depends(get_query_client)):
    """
    Delegates an /api/orders request to the request router.

    The body is passed through as text; decoding and validation happen in the handler
    so both entry points reject malformed input the same way.

    Returns:
        Response: Status code, headers and JSON body produced by the handler.
    """
    body = await request.body()
    # The handler issues blocking store calls; keep them off the event loop.
    result = await run_in_threadpool(
        handle_request,
        {
            "httpMethod": request.method,
            "path": _raw_path(request),
            "queryStringParameters": dict(request.query_params),
            "body": body.decode("utf-8") if body else "",
        },
        client=client,
    )
    return Response(
        content=result["body"],
        status_code=result["statusCode"],
        headers=result["headers"],
        media_type="application/json",
    )


def _raw_path(request: Request) -> str:
    # Still percent-encoded; the router decodes each path segment once.
    raw_path = request.scope.get("raw_path")
    if raw_path:
        return raw_path.decode("latin-1").split("?", 1)[0]
    return request.url.path


@app.get("/health")
def health_check():
    """
    Simple health check endpoint for monitoring systems and container orchestrators.

    Returns:
        dict: A basic JSON object indicating service availability.
    """
    return {"status": "ok"}
