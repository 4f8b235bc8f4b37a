"""
Anthropic Messages <-> OpenAI chat-completion transforms.

Pure functions, no I/O. The response direction raises TransformError for
anything that cannot be mapped, never a raw parsing exception.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..core.errors import TransformError
from ..models.messages import (
    Message,
    MessagesRequest,
    MessagesResponse,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    Usage,
)
from ..models.openai import (
    OpenAIFunctionCall,
    OpenAIFunctionDefinition,
    OpenAIMessage,
    OpenAIRequest,
    OpenAIResponse,
    OpenAITool,
    OpenAIToolCall,
)

logger = logging.getLogger(__name__)

STOP_REASONS = {
    "stop": "end_turn",
    "length": "max_tokens",
    "tool_calls": "tool_use",
}


def to_openai(request: MessagesRequest, model: Optional[str] = None) -> OpenAIRequest:
    """
    Transform a Messages request to an OpenAI chat-completion request.

    Args:
        request: Messages API request
        model: Backend model name; defaults to the request's model

    Returns:
        OpenAI request (``metadata`` and other Anthropic-only fields are dropped)
    """
    messages: List[OpenAIMessage] = []

    system = request.system_text
    if system:
        messages.append(OpenAIMessage(role="system", content=system))

    for message in request.messages:
        messages.extend(_message_to_openai(message))

    tools = None
    if request.tools:
        tools = [
            OpenAITool(
                function=OpenAIFunctionDefinition(
                    name=tool.name,
                    description=tool.description,
                    parameters=tool.input_schema,
                )
            )
            for tool in request.tools
        ]

    return OpenAIRequest(
        model=model or request.model or None,
        messages=messages,
        max_tokens=request.max_tokens,
        temperature=request.temperature,
        top_p=request.top_p,
        stream=request.stream,
        tools=tools,
    )


def _message_to_openai(message: Message) -> List[OpenAIMessage]:
    """
    Transform one Messages turn; may yield several OpenAI messages.

    Tool results become standalone ``tool`` messages and come first, since
    they answer the preceding assistant tool_calls. Any text or tool_use
    content of the same turn follows in its own message.
    """
    role = "user" if message.role == "user" else "assistant"

    if isinstance(message.content, str):
        return [OpenAIMessage(role=role, content=message.content)]

    results: List[OpenAIMessage] = []
    text_parts: List[str] = []
    tool_calls: List[OpenAIToolCall] = []

    for block in message.content:
        if isinstance(block, TextBlock):
            text_parts.append(block.text)
        elif isinstance(block, ToolUseBlock):
            tool_calls.append(OpenAIToolCall(
                id=block.id,
                function=OpenAIFunctionCall(
                    name=block.name,
                    arguments=json.dumps(block.input),
                ),
            ))
        elif isinstance(block, ToolResultBlock):
            results.append(OpenAIMessage(
                role="tool",
                content=block.text,
                tool_call_id=block.tool_use_id,
            ))

    if results and not text_parts and not tool_calls:
        return results

    results.append(OpenAIMessage(
        role=role,
        content="".join(text_parts) if text_parts else None,
        tool_calls=tool_calls or None,
    ))
    return results


def from_openai(
    response: Union[OpenAIResponse, Dict[str, Any]],
) -> MessagesResponse:
    """
    Transform an OpenAI chat-completion response to a Messages response.

    Raises:
        TransformError: If the body does not match the schema, has no
            choices, or carries tool arguments that are not a JSON object
    """
    if not isinstance(response, OpenAIResponse):
        try:
            response = OpenAIResponse.model_validate(response)
        except PydanticValidationError as e:
            raise TransformError(f"Unexpected chat completion shape: {e}")

    if not response.choices:
        raise TransformError("Chat completion contained no choices")

    choice = response.choices[0]
    content: List[Union[TextBlock, ToolUseBlock]] = []

    if choice.message.content:
        content.append(TextBlock(text=choice.message.content))

    for tool_call in choice.message.tool_calls or []:
        content.append(ToolUseBlock(
            id=tool_call.id,
            name=tool_call.function.name,
            input=_parse_arguments(tool_call),
        ))

    usage = response.usage
    return MessagesResponse(
        model=response.model,
        content=content,
        stop_reason=map_finish_reason(choice.finish_reason),
        usage=Usage(
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        ),
    )


def map_finish_reason(finish_reason: Optional[str]) -> Optional[str]:
    """
    Map an OpenAI finish_reason to a Messages stop_reason.

    An unset finish_reason stays unset so callers can tell the backend did
    not report one. Unrecognized values fall back to end_turn.
    """
    if finish_reason is None:
        return None
    if finish_reason not in STOP_REASONS:
        logger.debug(f"Unrecognized finish_reason {finish_reason!r}, using end_turn")
    return STOP_REASONS.get(finish_reason, "end_turn")


def _parse_arguments(tool_call: OpenAIToolCall) -> Dict[str, Any]:
    raw = tool_call.function.arguments
    if not raw or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise TransformError(
            f"Tool call {tool_call.id} ({tool_call.function.name}) has malformed arguments: {e}"
        )
    if not isinstance(parsed, dict):
        raise TransformError(
            f"Tool call {tool_call.id} ({tool_call.function.name}) arguments are not a JSON object"
        )
    return parsed
