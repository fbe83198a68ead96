"""Exception types shared across the assistant.

Protocol failures are raised by the MCP client only where a caller is expected
to degrade gracefully (tool listing). Tool invocation converts them into a
ToolInvocationResult instead.
"""
from __future__ import annotations


class McpError(Exception):
    """Base class for failures talking to the record store."""


class TransportError(McpError):
    """Network failure or non-success HTTP status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(McpError):
    """Response body could not be unframed or decoded."""


class RemoteToolError(McpError):
    """JSON-RPC error object returned by the server."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class GenerationError(Exception):
    """The generation engine failed to produce text."""


class ConfigError(ValueError):
    """Configuration is missing or invalid."""
