"""HTTP client for the record store's MCP endpoint.

Speaks JSON-RPC 2.0 over HTTP POST and tolerates server-sent-event framing of
the response. Tool listing raises McpError subclasses so the caller can
degrade; tool invocation never raises and reports failures as text instead.
"""
from __future__ import annotations

import itertools
import logging
from typing import Any, Mapping

import httpx
from pydantic import ValidationError

from visitor_assistant.config import McpConfig
from visitor_assistant.exceptions import (
    MalformedResponseError,
    RemoteToolError,
    TransportError,
)
from visitor_assistant.mcp.protocol import (
    JsonRpcRequest,
    JsonRpcResponse,
    McpCallResult,
    McpListToolsResult,
    extract_sse_payload,
)
from visitor_assistant.mcp.registry import ToolRegistry
from visitor_assistant.models import (
    RESERVED_PARAMETER,
    ToolDescriptor,
    ToolInvocationResult,
    is_reserved,
)

logger = logging.getLogger(__name__)

ACCEPT_HEADERS = {"Accept": "application/json, text/event-stream"}

DATABASE_ERROR = "Database error."
MALFORMED_RESPONSE = "Malformed response from record store."
NO_DATA = "No data returned."


class HttpMcpClient:
    """MCP client bound to one record store endpoint."""

    def __init__(
        self,
        url: str,
        registry: ToolRegistry | None = None,
        timeout: float = 30.0,
        reserved_parameter: str = RESERVED_PARAMETER,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.registry = registry if registry is not None else ToolRegistry()
        self.timeout = timeout
        self.reserved_parameter = reserved_parameter
        self._transport = transport
        self._request_ids = itertools.count(1)

    @classmethod
    def from_config(
        cls,
        config: McpConfig,
        registry: ToolRegistry | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> HttpMcpClient:
        return cls(
            url=config.url,
            registry=registry,
            timeout=config.timeout,
            reserved_parameter=config.reserved_parameter,
            transport=transport,
        )

    async def _rpc(self, method: str, params: dict[str, Any]) -> JsonRpcResponse:
        """Send one JSON-RPC request and decode the response envelope.

        Raises:
            TransportError: network failure or non-success status
            MalformedResponseError: body could not be decoded
        """
        request = JsonRpcRequest(method=method, params=params, id=next(self._request_ids))

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.url,
                    json=request.model_dump(),
                    headers=ACCEPT_HEADERS,
                )
        except httpx.HTTPError as e:
            raise TransportError(f"Connection error: {e}") from e

        if not response.is_success:
            raise TransportError(
                f"{method} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )

        payload = extract_sse_payload(response.text)
        try:
            return JsonRpcResponse.model_validate_json(payload)
        except ValidationError as e:
            raise MalformedResponseError(f"Could not decode {method} response: {e}") from e

    async def list_tools(self) -> list[ToolDescriptor]:
        """Fetch the tool catalogue and replace the registry snapshot.

        Returns:
            Tool descriptors in server order

        Raises:
            TransportError, MalformedResponseError, RemoteToolError
        """
        logger.info(f"Requesting tools from {self.url}")
        response = await self._rpc("tools/list", {})

        if response.error is not None:
            raise RemoteToolError(response.error.code, response.error.message)
        if response.result is None:
            raise MalformedResponseError("tools/list response carried no result")

        try:
            result = McpListToolsResult.model_validate(response.result)
        except ValidationError as e:
            raise MalformedResponseError(f"Invalid tools/list result: {e}") from e

        descriptors = [
            ToolDescriptor(
                name=tool.name,
                description=tool.description,
                parameter_schema=dict(tool.input_schema.properties),
            )
            for tool in result.tools
        ]
        self.registry.replace(descriptors)
        return descriptors

    async def invoke(
        self,
        tool_name: str,
        arguments: Mapping[str, Any],
        context_id: int | str,
    ) -> ToolInvocationResult:
        """Call a tool on behalf of one site.

        The reserved parameter is always taken from context_id, never from
        arguments. Failures come back as display_text with an empty payload.
        """
        final_arguments = {
            key: value
            for key, value in arguments.items()
            if not is_reserved(key, self.reserved_parameter)
        }
        final_arguments[self.reserved_parameter] = context_id

        logger.info(f"Calling tool {tool_name} with arguments {final_arguments}")

        try:
            response = await self._rpc(
                "tools/call", {"name": tool_name, "arguments": final_arguments}
            )
        except TransportError as e:
            logger.error(f"Tool call {tool_name} failed: {e}")
            if e.status_code is not None:
                return ToolInvocationResult(display_text=DATABASE_ERROR)
            return ToolInvocationResult(display_text=str(e))
        except MalformedResponseError as e:
            logger.error(f"Tool call {tool_name} failed: {e}")
            return ToolInvocationResult(display_text=MALFORMED_RESPONSE)

        if response.error is not None:
            logger.warning(f"MCP Server Error: {response.error.message}")
            return ToolInvocationResult(display_text=f"Error: {response.error.message}")

        try:
            result = McpCallResult.model_validate(response.result or {})
        except ValidationError as e:
            logger.error(f"Invalid tools/call result from {tool_name}: {e}")
            return ToolInvocationResult(display_text=MALFORMED_RESPONSE)

        text = result.content[0].text if result.content else ""
        if not text:
            return ToolInvocationResult(display_text=NO_DATA)

        logger.info(f"Tool returned: {text[:500]}")
        return ToolInvocationResult(raw_payload=text)

    def known_tools(self) -> frozenset[str]:
        return self.registry.known_names()
