"""MCP (JSON-RPC over HTTP) access to the record store."""
from .client import HttpMcpClient
from .protocol import extract_sse_payload
from .registry import RegistrySnapshot, ToolRegistry

__all__ = [
    "HttpMcpClient",
    "extract_sse_payload",
    "RegistrySnapshot",
    "ToolRegistry",
]
