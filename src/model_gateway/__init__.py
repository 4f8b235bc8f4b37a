"""
Model Gateway

A local gateway that speaks the Anthropic Messages API and executes
requests on other vendors' backends:
- Ollama (local inference)
- OpenRouter (OpenAI chat completions format)
- Gemini (generateContent format)

Synchronous responses and SSE streams are translated back to the
Messages format. The HTTP server lives in ``model_gateway.server``.
"""

from .core.interface import ProviderHandler
from .core.registry import HandlerRegistry, create_handler
from .core.config import GatewaySettings
from .core.errors import ConfigurationError, GatewayError, ProviderError, TransformError
from .models.messages import MessagesRequest, MessagesResponse, Message, Usage
from .routing.model_router import ModelRouter, PromptType
from .transformers.stream import SourceVendor, StreamTransformer

__version__ = "0.1.0"

__all__ = [
    "ProviderHandler",
    "HandlerRegistry",
    "create_handler",
    "GatewaySettings",
    "ConfigurationError",
    "GatewayError",
    "ProviderError",
    "TransformError",
    "MessagesRequest",
    "MessagesResponse",
    "Message",
    "Usage",
    "ModelRouter",
    "PromptType",
    "SourceVendor",
    "StreamTransformer",
]
