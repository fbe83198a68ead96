"""Question answering API routes."""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from visitor_assistant.exceptions import GenerationError

logger = logging.getLogger(__name__)

router = APIRouter()


class ChatRequest(BaseModel):
    """Request body for a question."""
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = ""
    site_id: Optional[int] = Field(None, alias="siteId")


@router.post("/home/ask")
async def ask(body: ChatRequest, request: Request) -> dict[str, Any]:
    """Answer one question, calling a record store tool if the model asks for one."""
    if not body.prompt or not body.prompt.strip():
        raise HTTPException(status_code=400, detail="Prompt is empty")

    state = request.app.state
    site_id = body.site_id if body.site_id is not None else state.config.orchestrator.default_site_id

    try:
        outcome = await state.orchestrator.run(body.prompt, site_id)
    except GenerationError as e:
        logger.error(f"Generation failed: {e}")
        raise HTTPException(status_code=502, detail=f"Generation engine unavailable: {e}")

    return {"answer": outcome.model_dump(mode="json")}
