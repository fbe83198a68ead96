"""Tests for the MCP client with a mocked record store."""
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from conftest import MCP_URL, RecordStoreStub
from visitor_assistant.exceptions import (
    MalformedResponseError,
    RemoteToolError,
    TransportError,
)
from visitor_assistant.mcp import HttpMcpClient, ToolRegistry, extract_sse_payload
from visitor_assistant.mcp.client import DATABASE_ERROR, MALFORMED_RESPONSE, NO_DATA


# =============================================================================
# Response unframing
# =============================================================================

def test_sse_payload_is_extracted():
    assert extract_sse_payload('data: {"result":{}}\n\n') == '{"result":{}}'


def test_bare_json_is_returned_unchanged():
    body = '{"jsonrpc":"2.0","result":{}}'
    assert extract_sse_payload(body) == body
    assert extract_sse_payload("  \n" + body) == "  \n" + body


def test_first_data_line_wins():
    body = 'event: message\r\ndata: {"a":1}\r\ndata: {"b":2}\r\n\r\n'
    assert extract_sse_payload(body) == '{"a":1}'


def test_missing_data_line_falls_back_to_raw_body():
    assert extract_sse_payload("event: ping\n\n") == "event: ping\n\n"


# =============================================================================
# tools/list
# =============================================================================

@pytest.mark.asyncio
async def test_list_tools_populates_registry(mcp_client, record_store, registry):
    assert registry.known_names() == frozenset()

    tools = await mcp_client.list_tools()

    assert [t.name for t in tools] == ["find_visitor", "get_unit_visitors"]
    assert list(tools[0].parameter_schema) == ["query", "siteId", "daysLookBack"]
    assert tools[0].visible_parameters() == ["query", "daysLookBack"]
    assert registry.known_names() == {"find_visitor", "get_unit_visitors"}
    assert registry.ordered_names() == ("find_visitor", "get_unit_visitors")

    request = record_store.calls("tools/list")[0]
    assert request["jsonrpc"] == "2.0"
    assert request["params"] == {}
    assert isinstance(request["id"], int)


@pytest.mark.asyncio
async def test_list_tools_accepts_sse_framing(registry):
    store = RecordStoreStub(sse=True)
    client = HttpMcpClient(MCP_URL, registry=registry, transport=store.transport)

    tools = await client.list_tools()

    assert len(tools) == 2
    assert client.known_tools() == {"find_visitor", "get_unit_visitors"}


@pytest.mark.asyncio
async def test_list_tools_replaces_previous_snapshot(mcp_client, record_store, registry):
    await mcp_client.list_tools()
    before = registry.current()

    record_store.tools = {"tools": [{"name": "list_units", "description": "", "inputSchema": {}}]}
    await mcp_client.list_tools()

    assert registry.known_names() == {"list_units"}
    assert before.ordered_names() == ("find_visitor", "get_unit_visitors")


@pytest.mark.asyncio
async def test_list_tools_http_error_raises_transport_error(registry):
    store = RecordStoreStub(status_code=503)
    client = HttpMcpClient(MCP_URL, registry=registry, transport=store.transport)

    with pytest.raises(TransportError) as exc_info:
        await client.list_tools()

    assert exc_info.value.status_code == 503
    assert registry.known_names() == frozenset()


@pytest.mark.asyncio
async def test_list_tools_garbage_body_raises_malformed(registry):
    store = RecordStoreStub(body="<html>oops</html>")
    client = HttpMcpClient(MCP_URL, registry=registry, transport=store.transport)

    with pytest.raises(MalformedResponseError):
        await client.list_tools()


@pytest.mark.asyncio
async def test_list_tools_wire_error_raises_remote_error(registry):
    store = RecordStoreStub(error={"code": -32601, "message": "Method not found"})
    client = HttpMcpClient(MCP_URL, registry=registry, transport=store.transport)

    with pytest.raises(RemoteToolError) as exc_info:
        await client.list_tools()

    assert exc_info.value.code == -32601


# =============================================================================
# tools/call
# =============================================================================

@pytest.mark.asyncio
async def test_invoke_injects_site_id(mcp_client, record_store):
    record_store.call_text = '[{"visitorName":"Alex"}]'

    result = await mcp_client.invoke("find_visitor", {"query": "Alex", "SiteId": 5}, 1001)

    assert result.ok
    assert result.raw_payload == '[{"visitorName":"Alex"}]'
    request = record_store.calls("tools/call")[0]
    assert request["params"] == {
        "name": "find_visitor",
        "arguments": {"query": "Alex", "siteId": 1001},
    }


@pytest.mark.asyncio
async def test_invoke_uses_increasing_request_ids(mcp_client, record_store):
    await mcp_client.invoke("find_visitor", {}, 1)
    await mcp_client.invoke("find_visitor", {}, 1)

    first, second = (r["id"] for r in record_store.requests)
    assert second > first


@pytest.mark.asyncio
async def test_invoke_http_error_returns_database_error(registry):
    store = RecordStoreStub(status_code=500)
    client = HttpMcpClient(MCP_URL, registry=registry, transport=store.transport)

    result = await client.invoke("find_visitor", {"query": "Alex"}, 1)

    assert not result.ok
    assert result.raw_payload == ""
    assert result.display_text == DATABASE_ERROR


@pytest.mark.asyncio
async def test_invoke_wire_error_is_prefixed(registry):
    store = RecordStoreStub(error={"code": -32000, "message": "Unknown tool: find_visito"})
    client = HttpMcpClient(MCP_URL, registry=registry, transport=store.transport)

    result = await client.invoke("find_visito", {}, 1)

    assert result.raw_payload == ""
    assert result.display_text == "Error: Unknown tool: find_visito"


@pytest.mark.asyncio
async def test_invoke_malformed_body(registry):
    store = RecordStoreStub(body="event: message\n\n")
    client = HttpMcpClient(MCP_URL, registry=registry, transport=store.transport)

    result = await client.invoke("find_visitor", {}, 1)

    assert result.display_text == MALFORMED_RESPONSE
    assert result.raw_payload == ""


@pytest.mark.asyncio
async def test_invoke_empty_content(registry):
    body = json.dumps({"jsonrpc": "2.0", "id": 1, "result": {"content": []}})
    store = RecordStoreStub(body=body)
    client = HttpMcpClient(MCP_URL, registry=registry, transport=store.transport)

    result = await client.invoke("find_visitor", {}, 1)

    assert result.display_text == NO_DATA
    assert not result.ok


@pytest.mark.asyncio
async def test_invoke_plain_text_payload_passes_through(mcp_client, record_store):
    record_store.call_text = "No visitors found for this query."

    result = await mcp_client.invoke("find_visitor", {"query": "Nobody"}, 1)

    assert result.raw_payload == "No visitors found for this query."


@pytest.mark.asyncio
async def test_invoke_connection_error_never_raises():
    """Network failures are reported, not raised."""
    mock_client = AsyncMock()
    mock_client.__aenter__.return_value = mock_client
    mock_client.post.side_effect = httpx.ConnectError("connection refused")

    client = HttpMcpClient(MCP_URL, registry=ToolRegistry())
    with patch("httpx.AsyncClient", return_value=mock_client):
        result = await client.invoke("find_visitor", {"query": "Alex"}, 1)

    assert result.raw_payload == ""
    assert result.display_text.startswith("Connection error:")
    assert "connection refused" in result.display_text


@pytest.mark.asyncio
async def test_list_tools_connection_error_raises_transport_error():
    mock_client = AsyncMock()
    mock_client.__aenter__.return_value = mock_client
    mock_client.post.side_effect = httpx.ConnectError("connection refused")

    client = HttpMcpClient(MCP_URL, registry=ToolRegistry())
    with patch("httpx.AsyncClient", return_value=mock_client):
        with pytest.raises(TransportError) as exc_info:
            await client.list_tools()

    assert exc_info.value.status_code is None
