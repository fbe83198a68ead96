"""Visitor Assistant - tool-calling orchestration between a local model and an MCP record store."""

__version__ = "0.1.0"
