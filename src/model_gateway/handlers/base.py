"""
Shared HTTP plumbing for provider handlers.
"""

import logging
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from ..core.errors import (
    ProviderAuthenticationError,
    ProviderConnectionError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    TransformError,
)
from ..core.interface import ProviderHandler

logger = logging.getLogger(__name__)


class HttpProviderHandler(ProviderHandler):
    """
    Base for handlers that talk JSON over HTTP.

    The httpx client is created lazily on first use and shared by all
    requests going through this handler.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 120.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the handler.

        Args:
            base_url: Backend API root
            timeout: Request timeout in seconds
            headers: Extra headers sent with every request
            transport: httpx transport override (used by tests)
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Content-Type": "application/json", **self._headers},
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post_json(
        self,
        path: str,
        payload: Dict[str, Any],
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST a JSON body and return the decoded JSON answer."""
        try:
            response = await self._get_client().post(path, json=payload, params=params)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"{self.provider} request timed out: {e}", provider=self.provider)
        except httpx.ConnectError as e:
            raise self._connection_error(e)
        except httpx.RequestError as e:
            raise ProviderConnectionError(str(e), provider=self.provider)

        self._check_response_errors(response)

        try:
            return response.json()
        except ValueError:
            raise TransformError(
                f"{self.provider} returned a non-JSON body: {response.text[:200]!r}",
                provider=self.provider,
            )

    async def _stream_text(
        self,
        path: str,
        payload: Dict[str, Any],
        params: Optional[Dict[str, str]] = None,
    ) -> AsyncIterator[str]:
        """POST a JSON body and yield the response text as it arrives."""
        try:
            async with self._get_client().stream("POST", path, json=payload, params=params) as response:
                if response.status_code >= 400:
                    await response.aread()
                    self._check_response_errors(response)
                async for text in response.aiter_text():
                    yield text
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"{self.provider} stream timed out: {e}", provider=self.provider)
        except httpx.ConnectError as e:
            raise self._connection_error(e)
        except httpx.RequestError as e:
            raise ProviderConnectionError(str(e), provider=self.provider)

    def _connection_error(self, error: Exception) -> ProviderError:
        return ProviderConnectionError(
            f"Cannot connect to {self.provider} at {self._base_url}: {error}",
            provider=self.provider,
        )

    def _check_response_errors(self, response: httpx.Response) -> None:
        """Check response for errors and raise appropriate exceptions."""
        if response.status_code < 400:
            return

        message = self._error_message(response)

        if response.status_code in (401, 403):
            raise ProviderAuthenticationError(message, provider=self.provider, status_code=response.status_code)

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            try:
                retry_seconds = float(retry_after) if retry_after else None
            except ValueError:
                retry_seconds = None
            raise ProviderRateLimitError(message, provider=self.provider, retry_after=retry_seconds)

        raise ProviderError(message, provider=self.provider, status_code=response.status_code)

    def _error_message(self, response: httpx.Response) -> str:
        """Best-effort error text from a failed backend response."""
        prefix = f"{self.provider} error"
        try:
            body = response.json()
        except ValueError:
            return f"{prefix}: {response.status_code}"

        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return f"{prefix}: {error['message']}"
        if isinstance(error, str) and error:
            return f"{prefix}: {error}"
        return f"{prefix}: {response.status_code}"
