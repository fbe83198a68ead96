"""Renders tool payloads as compact text for the summarization pass.

Models read ``name: value`` lines more reliably than raw JSON. The reserved
parameter is hidden and ISO timestamps are spelled out.
"""
from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any

from visitor_assistant.models import RESERVED_PARAMETER, is_reserved

# Day and month names follow the process locale.
LONG_DATE_FORMAT = "%A, %d %B %Y %H:%M"

# Extended ISO form only; "20240101" stays as-is.
ISO_DATE_PREFIX = re.compile(r"\d{4}-\d{2}-\d{2}")


def humanize_timestamp(value: str) -> str | None:
    """Long-form rendering of an ISO date/time string, or None if it is not one."""
    value = value.strip()
    if not ISO_DATE_PREFIX.match(value):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed.strftime(LONG_DATE_FORMAT)


def format_value(value: Any) -> str:
    if isinstance(value, str):
        return humanize_timestamp(value) or value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return json.dumps(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def format_object(element: Any, reserved: str = RESERVED_PARAMETER) -> str:
    """One line of ``name: value`` pairs; non-objects render as a bare value."""
    if not isinstance(element, dict):
        return format_value(element)
    return ", ".join(
        f"{name}: {format_value(value)}"
        for name, value in element.items()
        if not is_reserved(name, reserved)
    )


def format_result(raw_payload: str, reserved: str = RESERVED_PARAMETER) -> str:
    """Format a raw tool payload for the model.

    Text that is blank, does not look like JSON, or fails to decode is
    returned unchanged.
    """
    if not raw_payload or not raw_payload.strip():
        return raw_payload

    trimmed = raw_payload.strip()
    if not trimmed.startswith(("{", "[")):
        return raw_payload

    try:
        root = json.loads(trimmed)
    except (json.JSONDecodeError, RecursionError):
        return raw_payload

    if isinstance(root, list):
        return "\n".join(f"- {format_object(item, reserved)}" for item in root)
    return format_object(root, reserved)
