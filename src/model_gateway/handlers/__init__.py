"""
Provider handlers for the supported backends.
"""

from .base import HttpProviderHandler
from .ollama_handler import OllamaHandler
from .openrouter_handler import OpenRouterHandler
from .gemini_handler import GeminiHandler

__all__ = [
    "HttpProviderHandler",
    "OllamaHandler",
    "OpenRouterHandler",
    "GeminiHandler",
]
