"""Shared pytest fixtures for all tests."""
import json

import httpx
import pytest

from visitor_assistant.mcp import HttpMcpClient, ToolRegistry
from visitor_assistant.models import ToolDescriptor

MCP_URL = "http://records.test/api/mcp"

TOOLS_RESULT = {
    "tools": [
        {
            "name": "find_visitor",
            "description": "Finds visitors by name or plate.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "query": {"type": "string"},
                    "siteId": {"type": "integer"},
                    "daysLookBack": {"type": "integer"},
                },
            },
        },
        {
            "name": "get_unit_visitors",
            "description": "Lists all visitors who visited a specific unit.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "unit": {"type": "string"},
                    "siteId": {"type": "integer"},
                    "daysLookBack": {"type": "integer"},
                },
            },
        },
    ]
}


class RecordStoreStub:
    """In-memory MCP endpoint served through httpx.MockTransport."""

    def __init__(self, tools=None, call_text="[]", status_code=200, sse=False, error=None, body=None):
        self.tools = TOOLS_RESULT if tools is None else tools
        self.call_text = call_text
        self.status_code = status_code
        self.sse = sse
        self.error = error
        self.body = body
        self.requests: list[dict] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)

        if self.status_code != 200:
            return httpx.Response(self.status_code, text="upstream failure")
        if self.body is not None:
            return httpx.Response(200, text=self.body)

        envelope = {"jsonrpc": "2.0", "id": payload["id"]}
        if self.error is not None:
            envelope["error"] = self.error
        elif payload["method"] == "tools/list":
            envelope["result"] = self.tools
        else:
            envelope["result"] = {"content": [{"type": "text", "text": self.call_text}]}

        text = json.dumps(envelope)
        if self.sse:
            return httpx.Response(
                200,
                text=f"event: message\ndata: {text}\n\n",
                headers={"content-type": "text/event-stream"},
            )
        return httpx.Response(200, text=text, headers={"content-type": "application/json"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: str) -> list[dict]:
        return [r for r in self.requests if r["method"] == method]


class FakeEngine:
    """Generation engine returning canned replies in order."""

    def __init__(self, *responses: str):
        self.responses = list(responses)
        self.calls: list[tuple[str, str]] = []

    async def generate(self, prompt: str, system_message: str) -> str:
        self.calls.append((prompt, system_message))
        return self.responses.pop(0)


@pytest.fixture
def record_store():
    return RecordStoreStub()


@pytest.fixture
def registry():
    return ToolRegistry()


@pytest.fixture
def mcp_client(record_store, registry):
    return HttpMcpClient(MCP_URL, registry=registry, transport=record_store.transport)


@pytest.fixture
def loaded_registry():
    registry = ToolRegistry()
    registry.replace([
        ToolDescriptor(
            name=tool["name"],
            description=tool["description"],
            parameter_schema=tool["inputSchema"]["properties"],
        )
        for tool in TOOLS_RESULT["tools"]
    ])
    return registry
