"""Prompt builders for the two generation passes."""
from __future__ import annotations

import json
from datetime import datetime
from typing import Iterable

from visitor_assistant.models import RESERVED_PARAMETER, ToolDescriptor

ASSISTANT_PERSONA = "You are a helpful assistant."

# Long wall-clock form given to the model as "now".
NOW_FORMAT = "%A, %d %B %Y %H:%M:%S"

STRUCTURED_CALL_INSTRUCTION = (
    "If the user asks a question that requires external data, call the appropriate tool."
)

TAGGED_CALL_INSTRUCTION = (
    "If the user asks a question that requires external data, reply with exactly one call "
    'in the form [CALL: tool_name(parameter="value")] and nothing else. '
    "Otherwise answer directly."
)


def format_now(now: datetime) -> str:
    return now.strftime(NOW_FORMAT)


def tools_for_model(tools: Iterable[ToolDescriptor], reserved: str = RESERVED_PARAMETER) -> list[dict]:
    """Tool catalogue as shown to the model, reserved parameter removed."""
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "parameters": {"Properties": tool.visible_schema(reserved)},
        }
        for tool in tools
    ]


def build_system_prompt(
    tools: Iterable[ToolDescriptor],
    now: str,
    call_format: str = "structured",
    reserved: str = RESERVED_PARAMETER,
) -> str:
    """System prompt for the first pass, advertising the tool catalogue."""
    json_tools = json.dumps(tools_for_model(tools, reserved), separators=(",", ":"))
    instruction = TAGGED_CALL_INSTRUCTION if call_format == "tagged" else STRUCTURED_CALL_INSTRUCTION

    return (
        f"You are a visitor management assistant connected to a real-time system. Current time: {now}.\n"
        "\n"
        "<|tool|>\n"
        f"{json_tools}\n"
        "<|/tool|>\n"
        "\n"
        f"{instruction}"
    )


def build_summary_prompt(user_prompt: str, data: str, now: str) -> str:
    """User turn for the second pass, carrying the formatted tool data."""
    return (
        f"Current System Time: {now}\n"
        f'User Question: "{user_prompt}"\n'
        f"Data: {data}\n"
        "Instruction: Summarize naturally."
    )
