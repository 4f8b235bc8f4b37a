"""
Process settings for the gateway.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


@dataclass
class GatewaySettings:
    """Gateway configuration, read from the environment at construction."""

    # Target as "<provider>/<model>", e.g. "ollama/codellama"
    model: Optional[str] = field(default_factory=lambda: os.getenv("GATEWAY_MODEL"))

    # Server (loopback only)
    host: str = field(default_factory=lambda: os.getenv("GATEWAY_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: _env_int("GATEWAY_PORT", 3456))

    # Backends
    ollama_base_url: Optional[str] = field(default_factory=lambda: os.getenv("OLLAMA_BASE_URL"))
    openrouter_api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("OPENROUTER_API_KEY")
    )
    gemini_api_key: Optional[str] = field(default_factory=lambda: os.getenv("GEMINI_API_KEY"))
    request_timeout: float = field(
        default_factory=lambda: _env_float("GATEWAY_REQUEST_TIMEOUT", 120.0)
    )

    # Observability
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    otel_endpoint: Optional[str] = field(
        default_factory=lambda: os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    )

    def api_key_for(self, provider: str) -> Optional[str]:
        """Credential configured for a provider, if any."""
        return {
            "openrouter": self.openrouter_api_key,
            "gemini": self.gemini_api_key,
        }.get(provider)

    def base_url_for(self, provider: str) -> Optional[str]:
        """Base URL override configured for a provider, if any."""
        if provider == "ollama":
            return self.ollama_base_url
        return None
