"""
Pooled async HTTP client for calls to external collaborators.

Injects correlation headers from the RunContext, converts HTTP failures into
ServiceErrors and retries transient ones according to a RetryPolicy.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from .context import RunContext
from .errors import ErrorCode, RetryableError, ServiceError, TerminalError
from .retry import RetryPolicy, with_retry


class ServiceHttpClient:
    """Shared HTTP client.

    Example:
        client = ServiceHttpClient("https://acme.atlassian.net")
        async with client:
            response = await client.get("/rest/api/2/issue/KAN-1", context)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        retry_policy: RetryPolicy | None = None,
        default_headers: dict[str, str] | None = None,
        max_connections: int = 50,
        max_keepalive: int = 10,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.default_headers = dict(default_headers or {})

        self._limits = httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_keepalive,
            keepalive_expiry=30.0,
        )
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, limits=self._limits)
        return self._client

    async def close(self) -> None:
        """Close the underlying client and release pooled connections."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ServiceHttpClient":
        await self._get_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def _build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        context: RunContext,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request, retrying transient failures.

        Raises:
            RetryableError: Transient failure that survived every attempt.
            TerminalError: 4xx responses other than the retryable ones.
            ServiceError: Anything unexpected from the transport.
        """
        url = self._build_url(path)
        headers = {**self.default_headers, **kwargs.pop("headers", {})}
        headers.update(context.get_headers())

        @with_retry(self.retry_policy)
        async def _attempt() -> httpx.Response:
            return await self._send_once(method, url, path, headers, context, **kwargs)

        return await _attempt()

    async def _send_once(
        self,
        method: str,
        url: str,
        path: str,
        headers: dict[str, str],
        context: RunContext,
        **kwargs: Any,
    ) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.request(method=method, url=url, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise RetryableError(
                code=ErrorCode.TIMEOUT,
                message_safe=f"Request timed out after {self.timeout}s",
                cause=e,
            )
        except httpx.ConnectError as e:
            raise RetryableError(
                code=ErrorCode.CONNECTION_ERROR,
                message_safe="Failed to connect to service",
                cause=e,
            )
        except Exception as e:
            logger.error(f"[{context.request_id}] Unexpected error calling {method} {path}: {e}")
            raise ServiceError(
                code=ErrorCode.INTERNAL_ERROR,
                message_safe="Unexpected error during request",
                message_debug=str(e),
                cause=e,
            )

        status = response.status_code
        if self.retry_policy.should_retry_status(status) or status >= 500:
            code = ErrorCode.RATE_LIMITED if status == 429 else ErrorCode.SERVICE_UNAVAILABLE
            raise RetryableError(
                code=code,
                message_safe=f"Service returned {status}",
                message_debug=response.text[:500] if response.text else None,
            )
        if status == 401:
            raise TerminalError(code=ErrorCode.UNAUTHORIZED, message_safe="Unauthorized")
        if status == 403:
            raise TerminalError(code=ErrorCode.FORBIDDEN, message_safe="Forbidden")
        if status == 404:
            raise TerminalError(code=ErrorCode.NOT_FOUND, message_safe="Resource not found")
        if status >= 400:
            raise TerminalError(
                code=ErrorCode.INVALID_INPUT,
                message_safe=f"Request failed with status {status}",
                message_debug=response.text[:500] if response.text else None,
            )
        return response

    async def get(self, path: str, context: RunContext, **kwargs: Any) -> httpx.Response:
        """Send a GET request."""
        return await self.request("GET", path, context, **kwargs)
