"""
Unit tests for the Messages <-> OpenAI chat-completion transforms.
"""
import json

import pytest

from conftest import make_request
from model_gateway.core.errors import TransformError
from model_gateway.transformers.openai_transformer import (
    from_openai,
    map_finish_reason,
    to_openai,
)


def completion(message, finish_reason="stop", usage=None, model="openai/gpt-4o"):
    body = {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": model,
        "choices": [{"index": 0, "message": message, "finish_reason": finish_reason}],
    }
    if usage is not None:
        body["usage"] = usage
    return body


class TestToOpenAI:
    """Test request transformation."""

    def test_simple_text_message(self):
        """Test a plain user message maps 1:1."""
        result = to_openai(make_request())

        assert result.model == "test-model"
        assert result.max_tokens == 256
        assert [(m.role, m.content) for m in result.messages] == [("user", "Hello")]

    def test_system_prompt_prepended(self):
        """Test the system prompt becomes the first message."""
        result = to_openai(make_request(system="Be brief."))

        assert result.messages[0].role == "system"
        assert result.messages[0].content == "Be brief."
        assert result.messages[1].role == "user"

    def test_system_prompt_as_blocks(self):
        """Test a block-list system prompt is flattened."""
        request = make_request(system=[
            {"type": "text", "text": "Rule one."},
            {"type": "text", "text": "Rule two."},
        ])
        result = to_openai(request)

        assert result.messages[0].content == "Rule one.\nRule two."

    def test_model_override(self):
        """Test the explicit model argument wins over the request model."""
        assert to_openai(make_request(), model="gpt-4o-mini").model == "gpt-4o-mini"

    def test_sampling_parameters_pass_through(self):
        """Test temperature, top_p and stream are carried over."""
        result = to_openai(make_request(temperature=0.2, top_p=0.9, stream=True))

        assert result.temperature == 0.2
        assert result.top_p == 0.9
        assert result.stream is True

    def test_metadata_dropped(self):
        """Test Anthropic-only fields are not sent."""
        payload = to_openai(make_request(metadata={"user_id": "u1"})).to_payload()

        assert "metadata" not in payload

    def test_tools_mapped_to_functions(self):
        """Test tool definitions become function tools."""
        request = make_request(tools=[{
            "name": "get_weather",
            "description": "Current weather",
            "input_schema": {"type": "object", "properties": {"city": {"type": "string"}}},
        }])
        payload = to_openai(request).to_payload()

        assert payload["tools"] == [{
            "type": "function",
            "function": {
                "name": "get_weather",
                "description": "Current weather",
                "parameters": {"type": "object", "properties": {"city": {"type": "string"}}},
            },
        }]

    def test_text_blocks_concatenated(self):
        """Test consecutive text blocks are joined into one message."""
        request = make_request(messages=[{
            "role": "user",
            "content": [{"type": "text", "text": "Hello, "}, {"type": "text", "text": "world"}],
        }])
        result = to_openai(request)

        assert len(result.messages) == 1
        assert result.messages[0].content == "Hello, world"

    def test_tool_use_becomes_tool_call(self):
        """Test an assistant tool_use block becomes an OpenAI tool call."""
        request = make_request(messages=[
            {"role": "user", "content": "Weather in Paris?"},
            {"role": "assistant", "content": [
                {"type": "text", "text": "Checking."},
                {"type": "tool_use", "id": "toolu_1", "name": "get_weather", "input": {"city": "Paris"}},
            ]},
        ])
        assistant = to_openai(request).messages[1]

        assert assistant.role == "assistant"
        assert assistant.content == "Checking."
        assert len(assistant.tool_calls) == 1
        call = assistant.tool_calls[0]
        assert call.id == "toolu_1"
        assert call.type == "function"
        assert call.function.name == "get_weather"
        assert json.loads(call.function.arguments) == {"city": "Paris"}

    def test_tool_result_isolated(self):
        """Test a tool_result becomes a standalone tool message."""
        request = make_request(messages=[{
            "role": "user",
            "content": [{"type": "tool_result", "tool_use_id": "toolu_1", "content": "18C, sunny"}],
        }])
        result = to_openai(request)

        assert len(result.messages) == 1
        tool_msg = result.messages[0]
        assert tool_msg.role == "tool"
        assert tool_msg.tool_call_id == "toolu_1"
        assert tool_msg.content == "18C, sunny"

    def test_tool_result_with_block_content(self):
        """Test tool_result content given as text blocks is flattened."""
        request = make_request(messages=[{
            "role": "user",
            "content": [{
                "type": "tool_result",
                "tool_use_id": "toolu_1",
                "content": [{"type": "text", "text": "18C"}, {"type": "text", "text": ", sunny"}],
            }],
        }])

        assert to_openai(request).messages[0].content == "18C, sunny"

    def test_tool_results_precede_text_of_same_turn(self):
        """Test mixed tool_result + text keeps both, tool messages first."""
        request = make_request(messages=[{
            "role": "user",
            "content": [
                {"type": "tool_result", "tool_use_id": "toolu_1", "content": "done"},
                {"type": "tool_result", "tool_use_id": "toolu_2", "content": "also done"},
                {"type": "text", "text": "Now summarize."},
            ],
        }])
        result = to_openai(request)

        assert [m.role for m in result.messages] == ["tool", "tool", "user"]
        assert [m.tool_call_id for m in result.messages[:2]] == ["toolu_1", "toolu_2"]
        assert result.messages[2].content == "Now summarize."
        assert result.messages[2].tool_call_id is None


class TestFromOpenAI:
    """Test response transformation."""

    def test_text_response(self):
        """Test a text completion maps to a single text block."""
        result = from_openai(completion(
            {"role": "assistant", "content": "Hi there"},
            usage={"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
        ))

        assert result.type == "message"
        assert result.role == "assistant"
        assert result.id.startswith("msg_")
        assert result.model == "openai/gpt-4o"
        assert result.get_text() == "Hi there"
        assert result.stop_reason == "end_turn"
        assert result.usage.input_tokens == 12
        assert result.usage.output_tokens == 3

    def test_tool_call_response(self):
        """Test tool calls become tool_use blocks with parsed input."""
        result = from_openai(completion(
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [{
                    "id": "call_abc",
                    "type": "function",
                    "function": {"name": "get_weather", "arguments": '{"city": "Paris"}'},
                }],
            },
            finish_reason="tool_calls",
        ))

        assert len(result.content) == 1
        tool_use = result.get_tool_uses()[0]
        assert tool_use.id == "call_abc"
        assert tool_use.name == "get_weather"
        assert tool_use.input == {"city": "Paris"}
        assert result.stop_reason == "tool_use"

    def test_text_and_tool_call_order(self):
        """Test the text block precedes tool_use blocks."""
        result = from_openai(completion({
            "role": "assistant",
            "content": "Let me check.",
            "tool_calls": [{
                "id": "call_1",
                "type": "function",
                "function": {"name": "lookup", "arguments": "{}"},
            }],
        }, finish_reason="tool_calls"))

        assert [b.type for b in result.content] == ["text", "tool_use"]

    def test_missing_usage_defaults_to_zero(self):
        """Test absent usage is reported as zero tokens."""
        result = from_openai(completion({"role": "assistant", "content": "ok"}))

        assert result.usage.input_tokens == 0
        assert result.usage.output_tokens == 0

    def test_empty_content_has_no_blocks(self):
        """Test an empty message yields no content blocks."""
        result = from_openai(completion({"role": "assistant", "content": ""}))

        assert result.content == []

    def test_malformed_arguments_raise_transform_error(self):
        """Test unparseable tool arguments raise TransformError."""
        body = completion({
            "role": "assistant",
            "tool_calls": [{
                "id": "call_1",
                "type": "function",
                "function": {"name": "lookup", "arguments": '{"city": '},
            }],
        }, finish_reason="tool_calls")

        with pytest.raises(TransformError):
            from_openai(body)

    def test_non_object_arguments_raise_transform_error(self):
        """Test tool arguments that are not a JSON object are rejected."""
        body = completion({
            "role": "assistant",
            "tool_calls": [{
                "id": "call_1",
                "type": "function",
                "function": {"name": "lookup", "arguments": "[1, 2]"},
            }],
        }, finish_reason="tool_calls")

        with pytest.raises(TransformError):
            from_openai(body)

    def test_no_choices_raises_transform_error(self):
        """Test a completion without choices is rejected."""
        with pytest.raises(TransformError):
            from_openai({"id": "x", "model": "m", "choices": []})

    def test_invalid_shape_raises_transform_error(self):
        """Test a schema-invalid body raises TransformError, not a pydantic error."""
        with pytest.raises(TransformError):
            from_openai({"choices": [{"message": "not-an-object"}]})

    def test_tool_call_round_trip(self):
        """Test a tool_use survives a request/response round trip."""
        request = make_request(messages=[{
            "role": "assistant",
            "content": [{"type": "tool_use", "id": "toolu_9", "name": "search", "input": {"q": "pydantic"}}],
        }])
        assistant = to_openai(request).messages[0]
        response = from_openai(completion(
            assistant.model_dump(exclude_none=True),
            finish_reason="tool_calls",
        ))

        tool_use = response.get_tool_uses()[0]
        assert (tool_use.id, tool_use.name, tool_use.input) == ("toolu_9", "search", {"q": "pydantic"})


class TestFinishReason:
    """Test finish_reason mapping."""

    @pytest.mark.parametrize("finish_reason,expected", [
        ("stop", "end_turn"),
        ("length", "max_tokens"),
        ("tool_calls", "tool_use"),
        ("content_filter", "end_turn"),
        (None, None),
    ])
    def test_mapping(self, finish_reason, expected):
        """Test each finish_reason maps to the expected stop_reason."""
        assert map_finish_reason(finish_reason) == expected

    def test_unset_finish_reason_in_response(self):
        """Test an unset finish_reason yields a null stop_reason."""
        result = from_openai(completion({"role": "assistant", "content": "partial"}, finish_reason=None))

        assert result.stop_reason is None
