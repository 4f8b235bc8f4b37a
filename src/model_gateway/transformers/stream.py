"""
SSE stream transformation from OpenAI/Gemini to Anthropic Messages events.

One StreamTransformer per open streaming connection. Raw network chunks
are appended to a buffer; every complete ``data:`` frame found in the
buffer is converted, in arrival order, into Messages SSE frames.
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from ..models.messages import new_message_id

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
EVENT_SEPARATOR = "\n\n"
DONE_MARKER = "[DONE]"


class SourceVendor(str, Enum):
    """Wire format of the upstream stream."""
    OPENAI = "openai"
    GEMINI = "gemini"


class StreamTransformer:
    """
    Converts upstream SSE chunks to Anthropic Messages SSE frames.

    ``transform()`` returns:
    - a string of one or more ``data: ...\\n\\n`` frames,
    - ``""`` when the input produced no output (empty or ignored deltas),
    - ``None`` when the buffer holds a partial frame; call again with the
      next chunk. Buffered data is never dropped in that case.
    """

    def __init__(self, source: SourceVendor, model: str = "unknown"):
        self._source = SourceVendor(source)
        self._model = model
        self._buffer = ""
        self._completed = False
        self._started = False

        chunk_handlers = {
            SourceVendor.OPENAI: self._transform_openai_chunk,
            SourceVendor.GEMINI: self._transform_gemini_chunk,
        }
        self._transform_chunk = chunk_handlers[self._source]

    @property
    def source(self) -> SourceVendor:
        return self._source

    @property
    def buffer(self) -> str:
        """Data received but not yet converted."""
        return self._buffer

    def is_complete(self) -> bool:
        """Whether the upstream terminal marker has been seen."""
        return self._completed

    def reset(self) -> None:
        """Reset for a new stream."""
        self._buffer = ""
        self._completed = False
        self._started = False

    def transform(self, chunk: str) -> Optional[str]:
        """
        Transform one raw chunk.

        Args:
            chunk: Raw SSE text as read from the network

        Returns:
            Converted frames, "" for no output, or None while buffering
        """
        if not chunk or self._completed:
            return ""

        self._buffer += chunk.replace("\r\n", "\n")
        return self._process_buffer()

    def transform_batch(self, data: str) -> List[str]:
        """
        Transform a blob holding several blank-line separated events.

        The buffer is cleared between events, so each event must be
        self-contained.
        """
        results = []
        for event in data.replace("\r\n", "\n").split(EVENT_SEPARATOR):
            if not event.strip():
                continue
            result = self.transform(event)
            if result:
                results.append(result)
            self._buffer = ""
        return results

    def flush(self) -> str:
        """
        End the stream.

        Returns a message_stop frame if the upstream closed without sending
        its terminal marker, otherwise "".
        """
        if self._buffer.strip():
            logger.warning(f"Discarding {len(self._buffer)} unparsed bytes at end of stream")
        self._buffer = ""
        if self._completed:
            return ""
        self._completed = True
        return self._message_stop()

    def _process_buffer(self) -> Optional[str]:
        output = []

        while not self._completed:
            self._skip_non_data_lines()
            if not self._buffer:
                break
            if not self._buffer.startswith(DATA_PREFIX):
                # Partial "data:" prefix or partial ignored line.
                return "".join(output) if output else None

            frame_end = self._buffer.find(EVENT_SEPARATOR)
            frame = self._buffer if frame_end == -1 else self._buffer[:frame_end]
            rest = "" if frame_end == -1 else self._buffer[frame_end + len(EVENT_SEPARATOR):]
            payload = frame[len(DATA_PREFIX):].strip()

            if payload == DONE_MARKER:
                self._buffer = ""
                self._completed = True
                output.append(self._message_stop())
                break

            try:
                event = json.loads(payload)
            except json.JSONDecodeError:
                if frame_end == -1:
                    # Incomplete JSON mid-transmission.
                    return "".join(output) if output else None
                logger.warning(f"Dropping malformed {self._source.value} frame: {payload[:200]!r}")
                self._buffer = rest
                continue

            self._buffer = rest
            if isinstance(event, dict):
                output.append(self._transform_chunk(event))

        return "".join(output)

    def _skip_non_data_lines(self) -> None:
        """Drop leading whitespace, SSE comments and non-data fields such as ``event:``."""
        while True:
            self._buffer = self._buffer.lstrip()
            if self._buffer.startswith(DATA_PREFIX) or DATA_PREFIX.startswith(self._buffer):
                return
            newline = self._buffer.find("\n")
            if newline == -1:
                return
            self._buffer = self._buffer[newline + 1:]

    def _transform_openai_chunk(self, chunk: Dict[str, Any]) -> str:
        choices = chunk.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return ""
        delta = choices[0].get("delta")
        if not isinstance(delta, dict):
            return ""
        output = []

        if delta.get("role") == "assistant" and not self._started:
            output.append(self._message_start())

        content = delta.get("content")
        if isinstance(content, str) and content:
            output.append(self._content_delta(content, 0))

        tool_calls = delta.get("tool_calls")
        for tool_call in tool_calls if isinstance(tool_calls, list) else []:
            if not isinstance(tool_call, dict):
                continue
            function = tool_call.get("function")
            arguments = function.get("arguments") if isinstance(function, dict) else None
            index = tool_call.get("index")
            output.append(self._tool_delta(
                arguments if isinstance(arguments, str) else "",
                index if isinstance(index, int) else 0,
            ))

        return "".join(output)

    def _transform_gemini_chunk(self, chunk: Dict[str, Any]) -> str:
        candidates = chunk.get("candidates")
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return ""
        content = candidates[0].get("content")
        if not isinstance(content, dict):
            return ""
        parts = content.get("parts")
        if not isinstance(parts, list):
            return ""
        # Only object parts carry text or function calls
        parts = [p for p in parts if isinstance(p, dict)]
        output = []

        if content.get("role") == "model" and parts and not self._started:
            output.append(self._message_start())

        text = "".join(p["text"] for p in parts if isinstance(p.get("text"), str))
        if text:
            output.append(self._content_delta(text, 0))

        calls = [p["functionCall"] for p in parts if isinstance(p.get("functionCall"), dict)]
        for index, call in enumerate(calls):
            args = call.get("args")
            output.append(self._tool_delta(json.dumps(args if isinstance(args, dict) else {}), index))

        return "".join(output)

    def _message_start(self) -> str:
        self._started = True
        return _sse({
            "type": "message_start",
            "message": {
                "id": new_message_id(),
                "type": "message",
                "role": "assistant",
                "content": [],
                "model": self._model,
                "stop_reason": None,
                "usage": {"input_tokens": 0, "output_tokens": 0},
            },
        })

    def _message_stop(self) -> str:
        return _sse({"type": "message_stop"})

    def _content_delta(self, text: str, index: int) -> str:
        return _sse({
            "type": "content_block_delta",
            "index": index,
            "delta": {"type": "text_delta", "text": text},
        })

    def _tool_delta(self, partial_json: str, index: int) -> str:
        return _sse({
            "type": "content_block_delta",
            "index": index,
            "delta": {"type": "input_json_delta", "partial_json": partial_json},
        })


def _sse(event: Dict[str, Any]) -> str:
    return f"data: {json.dumps(event)}\n\n"
