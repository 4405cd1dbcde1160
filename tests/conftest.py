"""
Shared fixtures: connection settings and a fake agent server.

FakeAgent answers requests through httpx.MockTransport, so no test
touches the network. Each route is a list of responders; the last one
repeats once the others are used up.
"""

import json

import httpx
import pytest

from assistant_endpoint.config import ConnectionSettings

CALL_PATH = "/agents/abc/call"
CHAT_PATH = "/agents/abc/chat/completions"
STREAM_PATH = "/agents/abc/stream"
MODELS_PATH = "/agents/abc/models"
FILES_PATH = "/agents/abc/files"


class FakeAgent:
    """Routes requests by (method, path) and records every request."""

    def __init__(self):
        self.routes: dict[tuple[str, str], list] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, *responders) -> "FakeAgent":
        """
        Register responders for a route.

        A responder is a callable taking the request and returning an
        httpx.Response, or a (status, body) tuple where a dict body is
        sent as JSON and a str body as text.
        """
        self.routes[(method, path)] = list(responders)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responders = self.routes.get((request.method, request.url.path))
        if not responders:
            return httpx.Response(404, text="no route")

        responder = responders.pop(0) if len(responders) > 1 else responders[0]
        if callable(responder):
            return responder(request)

        status, body = responder
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, path: str | None = None) -> list[httpx.Request]:
        return [r for r in self.requests if path is None or r.url.path == path]

    def json_body(self, index: int = -1, path: str | None = None) -> dict:
        return json.loads(self.calls(path)[index].content)


@pytest.fixture
def agent() -> FakeAgent:
    """Fake agent that accepts the handshake."""
    return FakeAgent().on("POST", CALL_PATH, (200, {"message": "pong"}))


@pytest.fixture
def settings() -> ConnectionSettings:
    return ConnectionSettings(
        server_url="http://agent.test/",
        api_key="secret-key",
        agent_access_id="abc",
        timeout=5.0,
        call_endpoint="/agents/{agent_access_id}/call",
        chat_endpoint="/agents/{agent_access_id}/chat/completions",
        streaming_endpoint="/agents/{agent_access_id}/stream",
        models_endpoint="/agents/{agent_access_id}/models",
        files_endpoint="/agents/{agent_access_id}/files",
    )
