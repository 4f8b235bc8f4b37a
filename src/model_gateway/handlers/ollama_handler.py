"""
Ollama handler.

Serves Messages requests from a local Ollama server: no API key, native
/api/chat for regular calls and the OpenAI-compatible /v1 endpoint for
streaming.
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..core.errors import (
    ProviderConnectionError,
    ProviderError,
    ProviderTimeoutError,
    TransformError,
)
from ..models.messages import (
    MessagesRequest,
    MessagesResponse,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    Usage,
    new_tool_call_id,
)
from ..transformers.openai_transformer import to_openai
from ..transformers.stream import SourceVendor
from .base import HttpProviderHandler

logger = logging.getLogger(__name__)


class OllamaHandler(HttpProviderHandler):
    """
    Ollama handler for local LLM inference.

    Text content is forwarded as-is. Tool declarations and assistant tool
    calls use Ollama's native ``tools``/``tool_calls`` fields; tool results
    are passed as ``tool`` messages.
    """

    DEFAULT_BASE_URL = "http://localhost:11434"

    stream_source = SourceVendor.OPENAI

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Ollama handler.

        Args:
            base_url: Ollama server URL (default: http://localhost:11434)
            timeout: Request timeout in seconds (longer for local inference)
            transport: httpx transport override
        """
        super().__init__(
            base_url or self.DEFAULT_BASE_URL,
            timeout=timeout,
            transport=transport,
        )

    @property
    def provider(self) -> str:
        return "ollama"

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/api/chat"

    async def handle(self, request: MessagesRequest) -> MessagesResponse:
        """Execute a chat request against Ollama."""
        data = await self._post_json("/api/chat", self._to_ollama(request))
        return self._from_ollama(data, request.model)

    async def stream_raw(self, request: MessagesRequest) -> AsyncIterator[str]:
        """Stream through Ollama's OpenAI-compatible endpoint."""
        payload = to_openai(request).to_payload()
        payload["stream"] = True
        async for text in self._stream_text("/v1/chat/completions", payload):
            yield text

    async def check_health(self) -> bool:
        """Check that the Ollama server answers."""
        try:
            response = await self._get_client().get("/")
        except httpx.HTTPError as e:
            logger.warning(f"Ollama health probe failed: {e}")
            return False
        return response.status_code == 200

    async def list_models(self) -> List[str]:
        """List models installed in Ollama."""
        try:
            response = await self._get_client().get("/api/tags")
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"ollama request timed out: {e}", provider=self.provider)
        except httpx.ConnectError as e:
            raise self._connection_error(e)
        except httpx.RequestError as e:
            raise ProviderConnectionError(str(e), provider=self.provider)

        self._check_response_errors(response)
        try:
            data = response.json()
        except ValueError:
            raise TransformError(
                f"ollama returned a non-JSON model list: {response.text[:200]!r}",
                provider=self.provider,
            )
        models = data.get("models") if isinstance(data, dict) else None
        if not isinstance(models, list):
            raise TransformError("ollama model list has no 'models' array", provider=self.provider)
        return [m["name"] for m in models if isinstance(m, dict) and isinstance(m.get("name"), str)]

    def _connection_error(self, error: Exception) -> ProviderError:
        return ProviderConnectionError(
            "Ollama is not running. Start Ollama with: ollama serve",
            provider=self.provider,
        )

    def _build_options(self, request: MessagesRequest) -> Dict[str, Any]:
        """Build Ollama options from request."""
        options = {}

        if request.max_tokens is not None:
            options["num_predict"] = request.max_tokens
        if request.temperature is not None:
            options["temperature"] = request.temperature
        if request.top_p is not None:
            options["top_p"] = request.top_p

        return options

    def _to_ollama(self, request: MessagesRequest) -> Dict[str, Any]:
        messages = []

        system = request.system_text
        if system:
            messages.append({"role": "system", "content": system})

        tool_names = {}
        for msg in request.messages:
            if isinstance(msg.content, str):
                messages.append({"role": msg.role, "content": msg.content})
                continue

            for block in msg.content:
                if isinstance(block, ToolResultBlock):
                    tool_message = {"role": "tool", "content": block.text}
                    if block.tool_use_id in tool_names:
                        tool_message["tool_name"] = tool_names[block.tool_use_id]
                    messages.append(tool_message)

            text = "".join(b.text for b in msg.content if isinstance(b, TextBlock))
            tool_uses = [b for b in msg.content if isinstance(b, ToolUseBlock)]
            if tool_uses and msg.role == "assistant":
                tool_names.update((b.id, b.name) for b in tool_uses)
                messages.append({
                    "role": "assistant",
                    "content": text,
                    "tool_calls": [
                        {"function": {"name": b.name, "arguments": b.input}}
                        for b in tool_uses
                    ],
                })
            elif text:
                messages.append({"role": msg.role, "content": text})

        payload = {
            "model": request.model,
            "messages": messages,
            "stream": False,
            "options": self._build_options(request),
        }
        if request.tools:
            payload["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description or "",
                        "parameters": tool.input_schema,
                    },
                }
                for tool in request.tools
            ]
        return payload

    def _from_ollama(self, data: Dict[str, Any], model: str) -> MessagesResponse:
        message = data.get("message") or {}
        text = message.get("content") or ""

        tool_uses = []
        for call in message.get("tool_calls") or []:
            function = call.get("function") or {}
            tool_uses.append(ToolUseBlock(
                id=new_tool_call_id(),
                name=function.get("name") or "",
                input=self._parse_arguments(function),
            ))

        if tool_uses:
            stop_reason = "tool_use"
        elif data.get("done_reason") == "length":
            stop_reason = "max_tokens"
        elif data.get("done"):
            stop_reason = "end_turn"
        else:
            stop_reason = None

        content: List[Any] = [TextBlock(text=text)] if text else []
        return MessagesResponse(
            model=data.get("model") or model,
            content=content + tool_uses,
            stop_reason=stop_reason,
            usage=Usage(
                input_tokens=data.get("prompt_eval_count") or 0,
                output_tokens=data.get("eval_count") or 0,
            ),
        )

    def _parse_arguments(self, function: Dict[str, Any]) -> Dict[str, Any]:
        """Ollama sends arguments as an object; older builds send a JSON string."""
        arguments = function.get("arguments")
        if arguments is None or arguments == "":
            return {}
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments)
            except json.JSONDecodeError as e:
                raise TransformError(
                    f"Tool call {function.get('name')!r} has malformed arguments: {e}",
                    provider=self.provider,
                )
        if not isinstance(arguments, dict):
            raise TransformError(
                f"Tool call {function.get('name')!r} arguments are not a JSON object",
                provider=self.provider,
            )
        return arguments
