# ============================================================
# SQLDesk - Remote SQL Console
# core/gateway.py — Remote Query Gateway (HTTP database proxy)
# ============================================================

import time
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from config import gateway_config
from core.errors import MalformedResponse, NetworkFailure, QueryRejected
from core.models import QueryResult


class RemoteQueryGateway:
    """
    Sends SQL verbatim to the external database proxy and turns its JSON
    answer into a QueryResult.

    Wire format:
        request  → POST {"sql": "<statement>"}
        response ← {"success": bool, "data": [ {col: value, ...}, ... ], "error": str}

    Every failure is terminal for the call: no retries, no timeout beyond
    the HTTP client's own.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url or gateway_config.url
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=timeout if timeout is not None else gateway_config.timeout,
            headers={"Content-Type": "application/json"},
        )

    # ── Lifecycle ─────────────────────────────────────────────

    def close(self):
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RemoteQueryGateway":
        return self

    def __exit__(self, *exc_info):
        self.close()

    # ── Query Execution ───────────────────────────────────────

    def execute(self, sql: str) -> QueryResult:
        """
        Run one statement on the proxy.

        Raises:
            NetworkFailure: transport error or non-2xx status
            MalformedResponse: body is not a JSON object / data is not a list
            QueryRejected: proxy reported success=false
        """
        start_time = time.time()
        try:
            response = self._client.post(self.url, json={"sql": sql})
        except httpx.HTTPError as e:
            logger.error(f"Gateway transport error: {e}\nQuery: {sql}")
            raise NetworkFailure(str(e) or e.__class__.__name__) from e

        elapsed = int((time.time() - start_time) * 1000)

        if not response.is_success:
            logger.error(f"Gateway returned HTTP {response.status_code} after {elapsed}ms\nQuery: {sql}")
            raise NetworkFailure(
                response.reason_phrase or "Request failed",
                status_code=response.status_code,
            )

        payload = self._parse_payload(response)

        if not payload.get("success", False):
            message = payload.get("error") or "Query failed"
            logger.warning(f"Query rejected by proxy: {message}\nQuery: {sql}")
            raise QueryRejected(str(message))

        rows = payload.get("data")
        if rows is None:
            rows = []
        if not isinstance(rows, list):
            logger.error(f"Gateway 'data' is {type(rows).__name__}, expected list")
            raise MalformedResponse("Response 'data' is not a list of rows", raw_text=response.text)
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                logger.error(f"Gateway row {index} is {type(row).__name__}, expected object")
                raise MalformedResponse(f"Row {index} is not a JSON object", raw_text=response.text)

        logger.debug(f"Query OK: {len(rows)} rows in {elapsed}ms")
        return QueryResult(rows, sql=sql, execution_ms=elapsed)

    def _parse_payload(self, response: httpx.Response) -> Dict[str, Any]:
        text = response.text
        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Gateway response is not JSON: {text[:500]!r}")
            raise MalformedResponse("Response is not valid JSON", raw_text=text) from e

        if not isinstance(payload, dict):
            logger.error(f"Gateway response is not a JSON object: {text[:500]!r}")
            raise MalformedResponse("Response is not a JSON object", raw_text=text)
        return payload
