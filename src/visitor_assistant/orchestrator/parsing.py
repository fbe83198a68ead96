"""Extraction of tool calls from free model text.

Two encodings are supported, each behind the same ``parse(text)`` contract:

- structured: a JSON array ``[{"name": ..., "parameters": {...}}]`` embedded
  anywhere in the reply, located by the first ``[`` and the last ``]``.
- tagged: a pseudo-call ``[CALL: tool_name(param="value")]`` carrying a single
  positional value.

A parser returns None when the reply holds no call; the reply is then the
final answer. Parsers never raise on malformed model output.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from visitor_assistant.mcp.registry import RegistrySnapshot, ToolRegistry
from visitor_assistant.models import (
    RESERVED_PARAMETER,
    ArgumentValue,
    ToolCallIntent,
    is_reserved,
)
from visitor_assistant.orchestrator.naming import correct_tool_name

logger = logging.getLogger(__name__)

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

DEFAULT_PARAMETER = "query"

TAGGED_CALL_PATTERN = re.compile(
    r'\[CALL:\s*(?P<tool>\w+)\s*\(\s*'
    r'(?:(?P<param>\w+)\s*=\s*)?'
    r'"?(?P<value>[^)\]]*?)"?\s*\)\]'
)


class CallParser(Protocol):
    def parse(
        self, model_output: str, snapshot: RegistrySnapshot | None = None
    ) -> Optional[ToolCallIntent]:
        ...


def coerce_argument(value: Any) -> ArgumentValue:
    """Map a decoded JSON value onto the closed argument variant."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        if INT32_MIN <= value <= INT32_MAX:
            return value
        return float(value)
    if isinstance(value, float):
        return value
    if value is None:
        return ""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def extract_arguments(properties: Any, reserved: str = RESERVED_PARAMETER) -> dict[str, ArgumentValue]:
    """Coerce a parameters mapping, dropping the reserved parameter."""
    if not isinstance(properties, dict):
        return {}
    return {
        name: coerce_argument(value)
        for name, value in properties.items()
        if not is_reserved(name, reserved)
    }


def _unwrap_properties(parameters: Any) -> Any:
    # {"Properties": {...}} mirrors the schema layout shown in the prompt
    if isinstance(parameters, dict):
        for key, value in parameters.items():
            if key.lower() == "properties" and isinstance(value, dict):
                return value
    return parameters


class StructuredCallParser:
    """Parses ``[{"name": ..., "parameters": {...}}]`` replies."""

    def __init__(self, reserved: str = RESERVED_PARAMETER):
        self.reserved = reserved

    def parse(
        self, model_output: str, snapshot: RegistrySnapshot | None = None
    ) -> Optional[ToolCallIntent]:
        json_start = model_output.find("[")
        json_end = model_output.rfind("]")
        if json_start == -1 or json_end < json_start:
            return None

        try:
            root = json.loads(model_output[json_start:json_end + 1])
        except (json.JSONDecodeError, RecursionError):
            logger.debug("Bracketed text in model output is not JSON")
            return None

        if not isinstance(root, list) or not root or not isinstance(root[0], dict):
            return None

        tool_obj = root[0]
        tool_name = tool_obj.get("name")
        if not isinstance(tool_name, str) or not tool_name:
            return None

        parameters = _unwrap_properties(tool_obj.get("parameters", {}))
        return ToolCallIntent(
            tool_name=tool_name,
            arguments=extract_arguments(parameters, self.reserved),
        )


@dataclass(frozen=True)
class TaggedCall:
    """Raw match of a ``[CALL: ...]`` token."""
    tool_name: str
    value: str
    parameter: Optional[str] = None


class TaggedCallParser:
    """Parses ``[CALL: tool_name(param="value")]`` replies.

    The token carries one positional value. Its parameter name comes from the
    target tool's descriptor when the snapshot knows the tool, else from an
    explicit ``param=`` prefix, else from default_parameter. Without an
    explicit snapshot the registry's current one is used.
    """

    def __init__(
        self,
        registry: ToolRegistry | None = None,
        default_parameter: str = DEFAULT_PARAMETER,
        reserved: str = RESERVED_PARAMETER,
    ):
        self.registry = registry
        self.default_parameter = default_parameter
        self.reserved = reserved

    @staticmethod
    def scan(model_output: str) -> Optional[TaggedCall]:
        match = TAGGED_CALL_PATTERN.search(model_output)
        if not match:
            return None
        return TaggedCall(
            tool_name=match.group("tool"),
            value=match.group("value").strip().strip("\"'").strip(),
            parameter=match.group("param"),
        )

    def resolve_parameter(
        self, tool_name: str, hint: Optional[str], snapshot: RegistrySnapshot | None = None
    ) -> str:
        if snapshot is None and self.registry is not None:
            snapshot = self.registry.current()

        descriptor = None
        if snapshot is not None:
            descriptor = snapshot.get(tool_name) or snapshot.get(
                correct_tool_name(tool_name, snapshot.ordered_names())
            )

        if descriptor is not None:
            visible = descriptor.visible_parameters(self.reserved)
            if hint in visible:
                return hint
            if visible:
                return visible[0]

        return hint or self.default_parameter

    def parse(
        self, model_output: str, snapshot: RegistrySnapshot | None = None
    ) -> Optional[ToolCallIntent]:
        call = self.scan(model_output)
        if call is None:
            return None

        parameter = self.resolve_parameter(call.tool_name, call.parameter, snapshot)
        if is_reserved(parameter, self.reserved):
            return ToolCallIntent(tool_name=call.tool_name)
        return ToolCallIntent(tool_name=call.tool_name, arguments={parameter: call.value})


def create_parser(
    call_format: str,
    registry: ToolRegistry | None = None,
    default_parameter: str = DEFAULT_PARAMETER,
    reserved: str = RESERVED_PARAMETER,
) -> CallParser:
    """Build the parser for the configured call format."""
    if call_format == "structured":
        return StructuredCallParser(reserved=reserved)
    if call_format == "tagged":
        return TaggedCallParser(registry, default_parameter=default_parameter, reserved=reserved)
    raise ValueError(f"Unknown call format: {call_format}")
