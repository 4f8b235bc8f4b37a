"""
Handler registry: creates provider handlers and caches them by provider.
"""

import logging
from typing import Dict, List, Optional

from .errors import ConfigurationError, HandlerNotFoundError
from .interface import ProviderHandler

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("ollama", "openrouter", "gemini")

# Providers that cannot be constructed without a credential
KEY_REQUIRED_PROVIDERS = ("openrouter", "gemini")


def create_handler(
    provider: str,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: float = 120.0,
) -> ProviderHandler:
    """
    Create a handler for a provider.

    Args:
        provider: Provider name
        api_key: Credential for key-based providers
        base_url: Backend URL override
        timeout: Request timeout in seconds

    Returns:
        New handler instance

    Raises:
        ConfigurationError: If the provider is unknown or its credential is missing
    """
    # Imported here: handlers depend on core.interface
    from ..handlers import GeminiHandler, OllamaHandler, OpenRouterHandler

    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(
            f"Unknown provider: {provider}. Supported: {', '.join(SUPPORTED_PROVIDERS)}",
            provider=provider,
        )

    if provider in KEY_REQUIRED_PROVIDERS and not api_key:
        raise ConfigurationError(f"API key is required for {provider}", provider=provider)

    if provider == "ollama":
        return OllamaHandler(base_url=base_url, timeout=timeout)
    if provider == "openrouter":
        return OpenRouterHandler(api_key=api_key, base_url=base_url, timeout=timeout)
    return GeminiHandler(api_key=api_key, base_url=base_url, timeout=timeout)


class HandlerRegistry:
    """
    Registry of provider handlers.

    Handlers are created at most once per provider for the lifetime of the
    registry. A config change after first use needs an explicit
    ``invalidate()``. Each registry owns its own cache, so separate gateway
    instances never share backends.
    """

    def __init__(self, timeout: float = 120.0):
        """Initialize the registry."""
        self._handlers: Dict[str, ProviderHandler] = {}
        self._timeout = timeout

    def register(self, provider: str, handler: ProviderHandler) -> None:
        """
        Register a handler for a provider, replacing any cached one.

        Args:
            provider: Provider name
            handler: Handler instance
        """
        self._handlers[provider] = handler
        logger.info(f"Registered handler for provider: {provider}")

    def get(self, provider: str) -> ProviderHandler:
        """
        Get a registered handler.

        Raises:
            HandlerNotFoundError: If no handler is registered for the provider
        """
        if provider not in self._handlers:
            raise HandlerNotFoundError(
                f"No handler registered for provider: {provider}", provider=provider
            )
        return self._handlers[provider]

    def get_or_create(
        self,
        provider: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> ProviderHandler:
        """
        Return the cached handler for a provider, creating it on first use.

        Later calls return the cached instance even if the credential or URL
        differ.
        """
        existing = self._handlers.get(provider)
        if existing is not None:
            return existing

        handler = create_handler(provider, api_key=api_key, base_url=base_url, timeout=self._timeout)
        self._handlers[provider] = handler
        logger.info(f"Created handler for provider: {provider}")
        return handler

    def invalidate(self, provider: Optional[str] = None) -> None:
        """
        Drop cached handlers so the next ``get_or_create`` rebuilds them.

        Args:
            provider: Provider to drop; all providers if None
        """
        if provider is None:
            self._handlers.clear()
        else:
            self._handlers.pop(provider, None)
        logger.info(f"Invalidated handler cache: {provider or 'all providers'}")

    def list_providers(self) -> List[str]:
        return list(self._handlers)

    async def aclose(self) -> None:
        """Close every cached handler."""
        for provider, handler in self._handlers.items():
            try:
                await handler.aclose()
            except Exception as e:
                logger.error(f"Failed to close handler {provider}: {e}")
