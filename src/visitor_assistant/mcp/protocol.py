"""JSON-RPC envelopes and response unframing for the MCP HTTP transport.

The record store answers either with a bare JSON body or with a server-sent
events body where the payload sits on a ``data:`` line.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data:"


class JsonRpcRequest(BaseModel):
    """Outgoing request envelope."""
    jsonrpc: str = "2.0"
    method: str
    params: dict[str, Any] = Field(default_factory=dict)
    id: int


class JsonRpcError(BaseModel):
    code: int = 0
    message: str = ""


class JsonRpcResponse(BaseModel):
    """Incoming response envelope; result shape depends on the method."""
    model_config = ConfigDict(extra="ignore")

    jsonrpc: Optional[str] = None
    id: Optional[Any] = None
    result: Optional[dict[str, Any]] = None
    error: Optional[JsonRpcError] = None


class McpInputSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    properties: dict[str, Any] = Field(default_factory=dict)


class McpTool(BaseModel):
    """A tool entry of a tools/list result."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str
    description: str = ""
    input_schema: McpInputSchema = Field(default_factory=McpInputSchema, alias="inputSchema")


class McpListToolsResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tools: list[McpTool] = Field(default_factory=list)


class McpCallContent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str = "text"
    text: str = ""


class McpCallResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: list[McpCallContent] = Field(default_factory=list)


def extract_sse_payload(raw_content: str) -> str:
    """Extract the JSON payload from a possibly SSE-framed body.

    A body that already starts with ``{`` is returned unchanged. Otherwise the
    first ``data:`` line wins. When no such line exists the raw body is
    returned and will most likely fail to decode downstream.

    Args:
        raw_content: HTTP response body

    Returns:
        JSON text to decode
    """
    if raw_content.lstrip().startswith("{"):
        return raw_content

    for line in raw_content.splitlines():
        if line.startswith(SSE_DATA_PREFIX):
            return line[len(SSE_DATA_PREFIX):].strip()

    logger.warning(f"Could not find 'data:' prefix in SSE response. Content: {raw_content[:200]!r}")
    return raw_content
