"""
Core gateway components.
"""

from .interface import ProviderHandler
from .registry import HandlerRegistry, SUPPORTED_PROVIDERS, create_handler
from .config import GatewaySettings
from .errors import (
    GatewayError,
    ConfigurationError,
    HandlerNotFoundError,
    ValidationError,
    ProviderError,
    ProviderConnectionError,
    ProviderTimeoutError,
    ProviderAuthenticationError,
    ProviderRateLimitError,
    TransformError,
    ServerStateError,
)

__all__ = [
    "ProviderHandler",
    "HandlerRegistry",
    "SUPPORTED_PROVIDERS",
    "create_handler",
    "GatewaySettings",
    "GatewayError",
    "ConfigurationError",
    "HandlerNotFoundError",
    "ValidationError",
    "ProviderError",
    "ProviderConnectionError",
    "ProviderTimeoutError",
    "ProviderAuthenticationError",
    "ProviderRateLimitError",
    "TransformError",
    "ServerStateError",
]
