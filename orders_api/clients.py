"""
This module provides the communication client for the external query proxy that
fronts the relational store (products, inventory, orders).

The proxy accepts one parameterized statement per HTTP request and answers with
the resulting rows. The client encapsulates the wire format, credentials and
error translation; it never retries and never recovers a failure itself.
"""

import json
import logging
import os
from typing import Any, Optional, Sequence

import httpx
from pydantic import ValidationError

from .errors import QueryNotExecuted, ResponseParseError, TransportError
from .models import QueryResult

# Service address and credentials (normally from env vars)
QUERY_PROXY_URL = os.environ.get("QUERY_PROXY_URL", "https://db.creative-energy.net:2866")
QUERY_PROXY_PATH = os.environ.get("QUERY_PROXY_PATH", "/api/query")
QUERY_PROXY_USER = os.environ.get("QUERY_PROXY_USER", "cedbadmin")
QUERY_PROXY_PASSWORD = os.environ.get("QUERY_PROXY_PASSWORD", "cedbadmin123!")
QUERY_TIMEOUT_SECONDS = float(os.environ.get("QUERY_TIMEOUT_SECONDS", "10"))

log = logging.getLogger(__name__)


class QueryClient:
    """
    Client for the query proxy (REST, form-encoded).
    Sends a statement plus its bind values and returns the parsed QueryResult.
    """
    def __init__(self, http_client: Optional[httpx.Client] = None):
        """
        Initializes the HTTP client with timeout and basic auth configuration.

        Args:
            http_client (httpx.Client, optional): Preconfigured client to send requests with,
                e.g. one bound to a mock proxy. A client passed in is not closed by close().
        """
        self.auth = httpx.BasicAuth(QUERY_PROXY_USER, QUERY_PROXY_PASSWORD)
        self._owns_client = http_client is None
        if http_client is None:
            http_client = httpx.Client(
                base_url=QUERY_PROXY_URL,
                timeout=httpx.Timeout(QUERY_TIMEOUT_SECONDS),
            )
        self.client = http_client

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        """Closes the HTTP client session if this instance created it."""
        if self._owns_client:
            self.client.close()

    def execute(self, query: str, params: Sequence[Any] = ()) -> QueryResult:
        """
        Executes one statement on the store.

        Args:
            query (str): Statement with positional placeholders ($1, $2, ...).
            params (Sequence): Bind values, in placeholder order.

        Returns:
            QueryResult: Rows and affected row count.

        Raises:
            QueryNotExecuted: If the proxy cannot be reached or answers with a 4xx/5xx status.
            TransportError: If the request was sent but no complete reply arrived (outcome unknown).
            ResponseParseError: If the reply is not a JSON object with a list of rows.
        """
        form = {
            "query": query,
            "params": json.dumps(list(params)),
        }
        try:
            response = self.client.post(QUERY_PROXY_PATH, data=form, auth=self.auth)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error(f"Query proxy answered HTTP {e.response.status_code}: {e.response.text[:200]}")
            raise QueryNotExecuted(f"query proxy returned HTTP {e.response.status_code}") from e
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            log.error(f"Query proxy unreachable: {e!r}")
            raise QueryNotExecuted(f"query proxy unreachable: {e}") from e
        except httpx.HTTPError as e:
            # Sent but no complete reply: the statement may or may not have run.
            log.error(f"Query proxy reply lost: {e!r}")
            raise TransportError(f"query proxy reply lost: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise ResponseParseError(f"query proxy reply is not JSON: {e}") from e

        if not isinstance(payload, dict):
            raise ResponseParseError(f"query proxy reply is not an object: {type(payload).__name__}")

        try:
            return QueryResult.model_validate(payload)
        except ValidationError as e:
            raise ResponseParseError(f"malformed query proxy reply: {e.errors()[0]['msg']}") from e
