"""Record store tool catalogue routes."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from visitor_assistant.exceptions import McpError

router = APIRouter()


@router.get("/tools")
async def list_tools(request: Request) -> dict[str, Any]:
    """Refresh and list the tools advertised to the model."""
    state = request.app.state
    reserved = state.config.mcp.reserved_parameter

    try:
        descriptors = await state.client.list_tools()
    except McpError as e:
        raise HTTPException(status_code=502, detail=f"Record store unavailable: {e}")

    tools = [
        {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.visible_parameters(reserved),
        }
        for tool in descriptors
    ]

    return {
        "total": len(tools),
        "tools": tools,
    }
