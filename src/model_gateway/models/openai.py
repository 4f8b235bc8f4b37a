"""
OpenAI chat-completion models (used by OpenRouter and Ollama's /v1 endpoint).
"""

from typing import Optional, List, Dict, Any, Literal
from pydantic import BaseModel, Field


FinishReason = Literal["stop", "length", "tool_calls"]


class OpenAIFunctionCall(BaseModel):
    """Function name plus JSON-serialized arguments."""
    name: str
    arguments: str = "{}"


class OpenAIToolCall(BaseModel):
    """Tool call attached to an assistant message."""
    id: str
    type: Literal["function"] = "function"
    function: OpenAIFunctionCall


class OpenAIMessage(BaseModel):
    """Chat message; tool-role messages reference a tool_call_id."""
    role: Literal["system", "user", "assistant", "tool"]
    content: Optional[str] = None
    tool_calls: Optional[List[OpenAIToolCall]] = None
    tool_call_id: Optional[str] = None


class OpenAIFunctionDefinition(BaseModel):
    name: str
    description: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None


class OpenAITool(BaseModel):
    type: Literal["function"] = "function"
    function: OpenAIFunctionDefinition


class OpenAIRequest(BaseModel):
    """Chat completion request body."""
    model: Optional[str] = None
    messages: List[OpenAIMessage]
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    stream: Optional[bool] = None
    tools: Optional[List[OpenAITool]] = None

    def to_payload(self) -> Dict[str, Any]:
        """Wire payload with unset fields omitted."""
        return self.model_dump(exclude_none=True)


class OpenAIResponseMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: Optional[str] = None
    tool_calls: Optional[List[OpenAIToolCall]] = None


class OpenAIChoice(BaseModel):
    index: int = 0
    message: OpenAIResponseMessage
    # Kept as a plain string: backends report values outside FinishReason.
    finish_reason: Optional[str] = None


class OpenAIUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class OpenAIResponse(BaseModel):
    """Chat completion response body."""
    id: str = ""
    object: str = "chat.completion"
    created: int = 0
    model: str = ""
    choices: List[OpenAIChoice] = Field(default_factory=list)
    usage: Optional[OpenAIUsage] = None
