"""
Wire-format models for the gateway.
"""

from .messages import (
    ContentBlock,
    Message,
    MessagesRequest,
    MessagesResponse,
    TextBlock,
    ToolDefinition,
    ToolResultBlock,
    ToolUseBlock,
    Usage,
)
from .openai import OpenAIRequest, OpenAIResponse, OpenAIMessage, OpenAIToolCall
from .gemini import GeminiRequest, GeminiResponse, GeminiContent, GeminiPart

__all__ = [
    "ContentBlock",
    "Message",
    "MessagesRequest",
    "MessagesResponse",
    "TextBlock",
    "ToolDefinition",
    "ToolResultBlock",
    "ToolUseBlock",
    "Usage",
    "OpenAIRequest",
    "OpenAIResponse",
    "OpenAIMessage",
    "OpenAIToolCall",
    "GeminiRequest",
    "GeminiResponse",
    "GeminiContent",
    "GeminiPart",
]
