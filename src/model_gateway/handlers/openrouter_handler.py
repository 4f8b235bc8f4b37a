"""
OpenRouter handler.

Forwards Messages requests to OpenRouter's OpenAI-compatible chat
completions API.
"""

from typing import AsyncIterator, Dict, Optional

import httpx

from ..core.errors import ConfigurationError
from ..models.messages import MessagesRequest, MessagesResponse
from ..transformers.openai_transformer import from_openai, to_openai
from ..transformers.stream import SourceVendor
from .base import HttpProviderHandler


class OpenRouterHandler(HttpProviderHandler):
    """OpenRouter handler (key-based hosted inference)."""

    OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
    REFERER = "https://github.com/model-gateway/model-gateway"
    TITLE = "Model Gateway"

    stream_source = SourceVendor.OPENAI

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize OpenRouter handler.

        Args:
            api_key: OpenRouter API key (required)
            base_url: API root (defaults to openrouter.ai)
            timeout: Request timeout in seconds
            transport: httpx transport override

        Raises:
            ConfigurationError: If the API key is missing
        """
        if not api_key:
            raise ConfigurationError("API key is required for OpenRouter", provider="openrouter")
        self._api_key = api_key
        super().__init__(
            base_url or self.OPENROUTER_BASE_URL,
            timeout=timeout,
            headers=self.get_headers(),
            transport=transport,
        )

    @property
    def provider(self) -> str:
        return "openrouter"

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/chat/completions"

    def get_headers(self) -> Dict[str, str]:
        """Headers for OpenRouter API requests."""
        return {
            "Authorization": f"Bearer {self._api_key}",
            "HTTP-Referer": self.REFERER,
            "X-Title": self.TITLE,
        }

    async def handle(self, request: MessagesRequest) -> MessagesResponse:
        """Create a chat completion via OpenRouter."""
        payload = to_openai(request).to_payload()
        payload.pop("stream", None)

        data = await self._post_json("/chat/completions", payload)
        return from_openai(data)

    async def stream_raw(self, request: MessagesRequest) -> AsyncIterator[str]:
        """Create a streaming chat completion via OpenRouter."""
        payload = to_openai(request).to_payload()
        payload["stream"] = True
        async for text in self._stream_text("/chat/completions", payload):
            yield text
