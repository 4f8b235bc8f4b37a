"""
Gemini handler.

Forwards Messages requests to the Gemini generateContent API.
"""

from typing import AsyncIterator, Optional

import httpx

from ..core.errors import ConfigurationError
from ..models.messages import MessagesRequest, MessagesResponse
from ..transformers.gemini_transformer import from_gemini, to_gemini
from ..transformers.stream import SourceVendor
from .base import HttpProviderHandler


class GeminiHandler(HttpProviderHandler):
    """Gemini handler (key-based hosted inference)."""

    GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    stream_source = SourceVendor.GEMINI

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ConfigurationError("API key is required for Gemini", provider="gemini")
        super().__init__(
            base_url or self.GEMINI_BASE_URL,
            timeout=timeout,
            headers={"x-goog-api-key": api_key},
            transport=transport,
        )

    @property
    def provider(self) -> str:
        return "gemini"

    async def handle(self, request: MessagesRequest) -> MessagesResponse:
        data = await self._post_json(
            f"/models/{request.model}:generateContent",
            to_gemini(request).to_payload(),
        )
        return from_gemini(data, model=request.model)

    async def stream_raw(self, request: MessagesRequest) -> AsyncIterator[str]:
        async for text in self._stream_text(
            f"/models/{request.model}:streamGenerateContent",
            to_gemini(request).to_payload(),
            params={"alt": "sse"},
        ):
            yield text
