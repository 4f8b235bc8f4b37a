"""
Anthropic Messages <-> Gemini generateContent transforms.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..core.errors import TransformError
from ..models.gemini import (
    GeminiContent,
    GeminiFunctionCall,
    GeminiFunctionDeclaration,
    GeminiFunctionResponse,
    GeminiGenerationConfig,
    GeminiPart,
    GeminiRequest,
    GeminiResponse,
    GeminiSystemInstruction,
    GeminiTool,
)
from ..models.messages import (
    Message,
    MessagesRequest,
    MessagesResponse,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    Usage,
    new_tool_call_id,
)

STOP_REASONS = {
    "STOP": "end_turn",
    "MAX_TOKENS": "max_tokens",
}


def to_gemini(request: MessagesRequest) -> GeminiRequest:
    """
    Transform a Messages request to a Gemini generateContent request.

    The model and the stream flag are not part of the Gemini body (they
    select the endpoint) and are left to the caller.
    """
    result = GeminiRequest()

    system = request.system_text
    if system:
        result.system_instruction = GeminiSystemInstruction(parts=[GeminiPart(text=system)])

    tool_names = _tool_names_by_id(request.messages)
    for message in request.messages:
        result.contents.extend(_message_to_gemini(message, tool_names))

    if request.tools:
        result.tools = [GeminiTool(function_declarations=[
            GeminiFunctionDeclaration(
                name=tool.name,
                description=tool.description,
                parameters=tool.input_schema,
            )
            for tool in request.tools
        ])]

    if any(v is not None for v in (request.max_tokens, request.temperature, request.top_p)):
        result.generation_config = GeminiGenerationConfig(
            max_output_tokens=request.max_tokens,
            temperature=request.temperature,
            top_p=request.top_p,
        )

    return result


def _tool_names_by_id(messages: List[Message]) -> Dict[str, str]:
    names = {}
    for message in messages:
        if isinstance(message.content, str):
            continue
        for block in message.content:
            if isinstance(block, ToolUseBlock):
                names[block.id] = block.name
    return names


def _message_to_gemini(message: Message, tool_names: Dict[str, str]) -> List[GeminiContent]:
    """
    Transform one Messages turn into one or two Gemini contents.

    Function responses are grouped into their own user content, ahead of
    any text or function calls from the same turn.
    """
    role = "model" if message.role == "assistant" else "user"

    if isinstance(message.content, str):
        return [GeminiContent(role=role, parts=[GeminiPart(text=message.content)])]

    contents: List[GeminiContent] = []
    responses: List[GeminiPart] = []
    parts: List[GeminiPart] = []
    text_parts: List[str] = []

    def flush_text():
        if text_parts:
            parts.append(GeminiPart(text="".join(text_parts)))
            text_parts.clear()

    for block in message.content:
        if isinstance(block, TextBlock):
            text_parts.append(block.text)
            continue
        flush_text()
        if isinstance(block, ToolUseBlock):
            parts.append(GeminiPart(
                function_call=GeminiFunctionCall(name=block.name, args=block.input),
            ))
        elif isinstance(block, ToolResultBlock):
            key = "error" if block.is_error else "result"
            responses.append(GeminiPart(
                function_response=GeminiFunctionResponse(
                    name=tool_names.get(block.tool_use_id, block.tool_use_id),
                    response={key: block.text},
                ),
            ))
    flush_text()

    if responses:
        contents.append(GeminiContent(role="user", parts=responses))
    if parts:
        contents.append(GeminiContent(role=role, parts=parts))
    return contents


def from_gemini(
    response: Union[GeminiResponse, Dict[str, Any]],
    model: str = "gemini",
) -> MessagesResponse:
    """
    Transform a Gemini generateContent response to a Messages response.

    Raises:
        TransformError: If the body does not match the schema or has no candidates
    """
    if not isinstance(response, GeminiResponse):
        try:
            response = GeminiResponse.model_validate(response)
        except PydanticValidationError as e:
            raise TransformError(f"Unexpected generateContent shape: {e}")

    if not response.candidates:
        raise TransformError("generateContent response contained no candidates")

    candidate = response.candidates[0]
    text = "".join(p.text for p in candidate.content.parts if p.text)
    content: List[Union[TextBlock, ToolUseBlock]] = []

    if text:
        content.append(TextBlock(text=text))

    for part in candidate.content.parts:
        if part.function_call is not None:
            content.append(ToolUseBlock(
                id=new_tool_call_id(),
                name=part.function_call.name,
                input=part.function_call.args,
            ))

    usage = response.usage_metadata
    return MessagesResponse(
        model=model,
        content=content,
        stop_reason=map_finish_reason(candidate.finish_reason),
        usage=Usage(
            input_tokens=usage.prompt_token_count,
            output_tokens=usage.candidates_token_count,
        ),
    )


def map_finish_reason(finish_reason: Optional[str]) -> str:
    """Map a Gemini finishReason to a Messages stop_reason (end_turn by default)."""
    return STOP_REASONS.get(finish_reason or "", "end_turn")
