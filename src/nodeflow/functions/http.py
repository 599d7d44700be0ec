"""
HTTP Client - Timeout-bounded async HTTP requests for node functions.

All outbound calls made by built-in functions go through this wrapper so
that every request carries a timeout and failures surface as HttpApiError
or HttpTimeoutError with a readable message.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

import httpx


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class HttpTimeoutError(Exception):
    """Raised when an HTTP request times out."""

    def __init__(self, message: str, timeout: float, url: str):
        self.timeout = timeout
        self.url = url
        super().__init__(message)


class HttpApiError(Exception):
    """Error from HTTP request."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        url: Optional[str] = None,
        method: Optional[str] = None,
    ):
        self.status_code = status_code
        self.response_body = response_body
        self.url = url
        self.method = method
        super().__init__(message)


def raise_for_status(response: httpx.Response) -> None:
    """Raise HttpApiError if status code indicates error."""
    if response.is_success:
        return
    body = response.text[:1000] if response.text else None
    raise HttpApiError(
        message=f"HTTP {response.status_code}: {body or response.reason_phrase}",
        status_code=response.status_code,
        response_body=body,
        url=str(response.request.url),
        method=response.request.method,
    )


class HttpClient:
    """
    Async HTTP client with timeout enforcement.

    Usage:
        client = HttpClient(base_url="https://api.example.com", timeout=10)
        response = await client.get("/users", params={"limit": 10})
        data = response.json()
    """

    def __init__(
        self,
        base_url: str = "",
        default_headers: Optional[Dict[str, str]] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize HTTP client.

        Args:
            base_url: Base URL for all requests
            default_headers: Headers to include in all requests
            timeout: Default timeout in seconds
            transport: Custom transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers: Dict[str, str] = dict(default_headers or {})
        self._transport = transport

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        data: Optional[Union[Dict[str, Any], str, bytes]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """
        Make HTTP request with timeout enforcement.

        Returns:
            The raw httpx response (status is not checked)

        Raises:
            HttpTimeoutError: If request times out
            HttpApiError: If the request cannot be sent
        """
        url = f"{self.base_url}{endpoint}" if self.base_url else endpoint
        request_headers = {**self.headers, **(headers or {})}
        request_timeout = timeout or self.timeout

        try:
            async with httpx.AsyncClient(
                timeout=request_timeout,
                transport=self._transport,
            ) as client:
                return await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    content=data if isinstance(data, (str, bytes)) else None,
                    data=data if isinstance(data, dict) else None,
                    headers=request_headers,
                )

        except httpx.TimeoutException as e:
            raise HttpTimeoutError(
                message=f"Request timed out after {request_timeout}s",
                timeout=request_timeout,
                url=url,
            ) from e

        except httpx.HTTPError as e:
            raise HttpApiError(
                message=f"Request failed: {e}",
                url=url,
                method=method,
            ) from e

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> httpx.Response:
        """Make GET request."""
        return await self.request("GET", endpoint, params=params, **kwargs)

    async def post(self, endpoint: str, json: Optional[Any] = None, **kwargs: Any) -> httpx.Response:
        """Make POST request."""
        return await self.request("POST", endpoint, json=json, **kwargs)


__all__ = [
    "HttpClient",
    "HttpApiError",
    "HttpTimeoutError",
    "raise_for_status",
    "DEFAULT_TIMEOUT",
]
