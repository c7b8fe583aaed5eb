"""
Transport executor for Query Service requests.

Issues one logical request with a hard per-attempt timeout, retrying transient
failures (network errors, timeouts, HTTP 5xx and 429) with exponential
backoff, and translating every other outcome into the client error taxonomy.
"""

import asyncio
from typing import Dict, Any, Optional, Union

import httpx

from ..core.exceptions import QueryServiceError, error_from_response
from ..utils.logger import get_logger
from .backoff import RetryBackoff

Params = Dict[str, Union[str, int]]


def is_retryable_status(status_code: int) -> bool:
    """Check if an HTTP status indicates a transient server-side failure."""
    return status_code >= 500 or status_code == 429


class TransportExecutor:
    """
    Executes requests against the Query Service with retries.

    The executor shares only read-only configuration between calls; every
    call keeps its attempt bookkeeping on the stack, so one executor can
    serve many concurrent coroutines.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        timeout: float,
        max_retries: int,
        backoff: Optional[RetryBackoff] = None
    ):
        """
        Initialize the executor.

        Args:
            http_client: Pooled HTTP client with base URL and auth headers set
            timeout: Per-attempt timeout in seconds
            max_retries: Retries after the first attempt (total attempts = max_retries + 1)
            backoff: Delay policy between retries
        """
        self.http_client = http_client
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff or RetryBackoff()
        self.logger = get_logger(__name__)

    async def request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        params: Optional[Params] = None
    ) -> Any:
        """
        Execute a request and return the parsed JSON body.

        Raises:
            AuthenticationError, ValidationError, NotFoundError: Non-retryable 4xx
            QueryServiceError: Other HTTP errors, or retries exhausted
        """
        response = await self._send(method, path, body=body, params=params)

        try:
            return response.json()
        except ValueError as e:
            raise QueryServiceError(
                f"Invalid JSON in response to {method} {path}: {str(e)}",
                status_code=response.status_code
            ) from e

    async def open_stream(
        self,
        method: str,
        path: str,
        params: Optional[Params] = None
    ) -> httpx.Response:
        """
        Execute a request without reading the body.

        Only the attempts made before any body byte is consumed are retried.
        The caller owns the returned response and must close it.
        """
        return await self._send(method, path, params=params, stream=True)

    async def _send(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        params: Optional[Params] = None,
        stream: bool = False
    ) -> httpx.Response:
        attempts = self.max_retries + 1
        last_cause = "Unknown error"
        last_error: Optional[QueryServiceError] = None

        for attempt in range(attempts):
            request = self.http_client.build_request(
                method,
                path,
                json=body,
                params=params
            )

            try:
                response = await asyncio.wait_for(
                    self._attempt(request, stream),
                    timeout=self.timeout
                )
            except asyncio.TimeoutError:
                last_cause = f"Request timed out after {self.timeout} seconds"
                last_error = None
            except httpx.RequestError as e:
                last_cause = f"{type(e).__name__}: {str(e) or 'request failed'}"
                last_error = None
            else:
                if response.status_code < 400:
                    return response

                error = error_from_response(response.status_code, response.text)
                if not is_retryable_status(response.status_code):
                    raise error

                last_cause = error.message
                last_error = error

            if attempt < self.max_retries:
                delay = self.backoff.delay(attempt)
                self.logger.warning(
                    f"Transient failure on {method} {path}, retrying in {delay:.2f}s",
                    extra={
                        "method": method,
                        "path": path,
                        "attempt": attempt + 1,
                        "max_attempts": attempts,
                        "delay_seconds": delay,
                        "cause": last_cause
                    }
                )
                await asyncio.sleep(delay)

        self.logger.error(f"{method} {path} failed after {attempts} attempts: {last_cause}")

        message = f"Request failed after {attempts} attempts: {last_cause}"
        if last_error is not None:
            raise QueryServiceError(
                message,
                status_code=last_error.status_code,
                exception_id=last_error.exception_id,
                context=last_error.context
            )
        raise QueryServiceError(message)

    async def _attempt(self, request: httpx.Request, stream: bool) -> httpx.Response:
        response = await self.http_client.send(request, stream=stream)

        # Error bodies of streamed requests are read here, so a dropped
        # connection or a stalled body counts against this attempt
        if stream and response.status_code >= 400:
            try:
                await response.aread()
            finally:
                await response.aclose()
        return response
