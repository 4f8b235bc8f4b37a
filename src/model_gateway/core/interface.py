"""
Provider handler interface.

Defines the contract every backend handler implements.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

from ..models.messages import MessagesRequest, MessagesResponse
from ..transformers.stream import SourceVendor


class ProviderHandler(ABC):
    """
    Abstract base class for provider handlers.

    A handler executes one Messages request against one backend and
    returns a Messages response. Handlers hold no per-request state, so a
    single instance serves concurrent requests.
    """

    #: Wire format of ``stream_raw`` output; None if the handler cannot stream.
    stream_source: Optional[SourceVendor] = None

    @property
    @abstractmethod
    def provider(self) -> str:
        """
        Provider name (e.g., "ollama", "openrouter").

        Returns:
            Provider identifier
        """
        pass

    @abstractmethod
    async def handle(self, request: MessagesRequest) -> MessagesResponse:
        """
        Execute a request against the backend.

        Args:
            request: Messages API request; ``request.model`` is the backend model

        Returns:
            Messages API response

        Raises:
            ProviderError: If the backend is unreachable or fails
            TransformError: If the backend answer cannot be mapped
        """
        pass

    async def check_health(self) -> bool:
        """
        Probe the backend.

        Handlers without a probe are always considered healthy.
        """
        return True

    async def stream_raw(self, request: MessagesRequest) -> AsyncIterator[str]:
        """
        Execute a streaming request and yield raw upstream SSE text.

        The chunks are in the ``stream_source`` wire format and are meant to
        be fed through a StreamTransformer.
        """
        raise NotImplementedError(f"{self.provider} does not support streaming")
        yield  # pragma: no cover

    async def aclose(self) -> None:
        """Release network resources."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider={self.provider!r})"
