"""
Shared fixtures for gateway tests.
"""
import json

import httpx
import pytest

from model_gateway.models.messages import MessagesRequest


def make_request(**overrides) -> MessagesRequest:
    """Build a minimal valid Messages request."""
    data = {
        "model": "test-model",
        "max_tokens": 256,
        "messages": [{"role": "user", "content": "Hello"}],
    }
    data.update(overrides)
    return MessagesRequest.model_validate(data)


class RecordingBackend:
    """httpx MockTransport backend that records requests and replays canned answers."""

    def __init__(self, handler):
        self.requests = []
        self._handler = handler
        self.transport = httpx.MockTransport(self._dispatch)

    def _dispatch(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    @property
    def last_json(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def simple_request() -> MessagesRequest:
    return make_request()
