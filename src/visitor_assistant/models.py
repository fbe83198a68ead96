"""
Core data types for the tool-calling conversation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Tenant key injected by the client and hidden from the model.
RESERVED_PARAMETER = "siteId"

# Closed set of argument value kinds accepted from model output.
ArgumentValue = Union[str, int, float, bool]


def is_reserved(name: str, reserved: str = RESERVED_PARAMETER) -> bool:
    """Case-insensitive check against the reserved parameter name."""
    return name.lower() == reserved.lower()


@dataclass(frozen=True)
class ToolDescriptor:
    """A tool advertised by the record store."""
    name: str
    description: str = ""
    parameter_schema: dict[str, Any] = field(default_factory=dict)

    def visible_parameters(self, reserved: str = RESERVED_PARAMETER) -> list[str]:
        """Parameter names the model is allowed to see, in schema order."""
        return [p for p in self.parameter_schema if not is_reserved(p, reserved)]

    def visible_schema(self, reserved: str = RESERVED_PARAMETER) -> dict[str, Any]:
        return {
            name: schema
            for name, schema in self.parameter_schema.items()
            if not is_reserved(name, reserved)
        }


@dataclass(frozen=True)
class ToolCallIntent:
    """A (tool name, arguments) pair extracted from model text."""
    tool_name: str
    arguments: dict[str, ArgumentValue] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolInvocationResult:
    """Outcome of a tools/call request.

    raw_payload is empty when the call failed; display_text then explains why.
    """
    raw_payload: str = ""
    display_text: str = ""

    @property
    def ok(self) -> bool:
        return bool(self.raw_payload)


class ConversationOutcome(BaseModel):
    """Final answer of one orchestration run."""
    model_config = ConfigDict(frozen=True)

    answer_text: str
    tool_used: Optional[str] = None
    data_context: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)
