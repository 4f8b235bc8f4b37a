"""
Anthropic Messages API models.

This is the primary wire format: the gateway accepts these requests and
always answers with these responses, whatever backend executes them.
"""

import uuid
from typing import Optional, List, Dict, Any, Union, Literal, Annotated

from pydantic import BaseModel, Field


StopReason = Literal["end_turn", "max_tokens", "tool_use"]


class TextBlock(BaseModel):
    """Plain text content."""
    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """A model-issued tool invocation."""
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    """The caller's answer to an earlier tool_use block."""
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: Union[str, List[TextBlock]] = ""
    is_error: Optional[bool] = None

    @property
    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return "".join(block.text for block in self.content)


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]

ResponseContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock],
    Field(discriminator="type"),
]


class Message(BaseModel):
    """A conversation turn; content is a string or a list of blocks."""
    role: Literal["user", "assistant"]
    content: Union[str, List[ContentBlock]]


class ToolDefinition(BaseModel):
    """Tool declaration with a JSON-schema input shape."""
    name: str
    description: Optional[str] = None
    input_schema: Dict[str, Any] = Field(default_factory=lambda: {"type": "object"})


class MessagesRequest(BaseModel):
    """
    Messages API request.

    The system prompt is kept apart from the message list and may be sent
    either as a string or as a list of text blocks.
    """
    model: str = ""
    messages: List[Message]
    max_tokens: Optional[int] = Field(default=None, ge=1)
    system: Optional[Union[str, List[TextBlock]]] = None
    temperature: Optional[float] = Field(default=None, ge=0)
    top_p: Optional[float] = Field(default=None, ge=0, le=1)
    stream: Optional[bool] = None
    tools: Optional[List[ToolDefinition]] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def system_text(self) -> Optional[str]:
        """System prompt flattened to a single string, or None if absent/empty."""
        if self.system is None:
            return None
        if isinstance(self.system, str):
            return self.system or None
        joined = "\n".join(block.text for block in self.system)
        return joined or None


class Usage(BaseModel):
    """Token usage as reported by the backend."""
    input_tokens: int = 0
    output_tokens: int = 0


class MessagesResponse(BaseModel):
    """Messages API response."""
    id: str = Field(default_factory=lambda: new_message_id())
    type: Literal["message"] = "message"
    role: Literal["assistant"] = "assistant"
    model: str = ""
    content: List[ResponseContentBlock] = Field(default_factory=list)
    stop_reason: Optional[StopReason] = None
    stop_sequence: Optional[str] = None
    usage: Usage = Field(default_factory=Usage)

    def get_text(self) -> str:
        """Concatenated text of all text blocks."""
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))

    def get_tool_uses(self) -> List[ToolUseBlock]:
        return [b for b in self.content if isinstance(b, ToolUseBlock)]


def new_message_id() -> str:
    return f"msg_{uuid.uuid4().hex[:24]}"


def new_tool_call_id() -> str:
    return f"call_{uuid.uuid4().hex[:24]}"
