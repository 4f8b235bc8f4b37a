"""
Gateway error types.

Every failure the gateway can surface derives from GatewayError so the
server boundary can map it to a status code and JSON body.
"""

from typing import Optional


class GatewayError(Exception):
    """Base exception for gateway errors."""

    def __init__(self, message: str, provider: Optional[str] = None):
        self.message = message
        self.provider = provider
        super().__init__(message)


class ConfigurationError(GatewayError):
    """Raised for unknown providers, bad provider strings or missing credentials."""
    pass


class HandlerNotFoundError(ConfigurationError):
    """Raised when no handler is registered for a provider."""
    pass


class ValidationError(GatewayError):
    """Raised when an incoming request is malformed."""
    pass


class ProviderError(GatewayError):
    """Raised when a backend is unreachable or returns a failure."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, provider)
        self.status_code = status_code


class ProviderConnectionError(ProviderError):
    """Raised when the backend cannot be reached."""
    pass


class ProviderTimeoutError(ProviderError):
    """Raised when the backend does not answer in time."""
    pass


class ProviderAuthenticationError(ProviderError):
    """Raised when the backend rejects the credential."""
    pass


class ProviderRateLimitError(ProviderError):
    """Raised when the backend rate limit is exceeded."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message, provider, status_code=429)
        self.retry_after = retry_after


class TransformError(GatewayError):
    """Raised when a backend response cannot be mapped to the Messages format."""
    pass


class ServerStateError(GatewayError):
    """Raised when the gateway server lifecycle is used out of order."""
    pass
