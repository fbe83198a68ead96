"""
Conversation Orchestrator

Drives one question through the two-pass tool-calling flow:

    INIT -> FETCH_TOOLS -> FIRST_GENERATION -> NO_INTENT -> DONE
                                            -> HAS_INTENT -> CORRECT_NAME -> INVOKE
                                               -> FORMAT -> SECOND_GENERATION -> DONE

Every phase runs to completion before the next starts. Record store failures
never abort a run: a failed tool listing means no tools are advertised to
the model, and tool invocation failures flow into the second pass as
ordinary text. Each run reads the registry snapshot once; parsing and
name correction both use it, so a failed refresh still corrects against the
last good catalogue.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Protocol

from visitor_assistant.config import AssistantConfig
from visitor_assistant.exceptions import McpError
from visitor_assistant.llm import GenerationEngine
from visitor_assistant.mcp.registry import ToolRegistry
from visitor_assistant.models import (
    RESERVED_PARAMETER,
    ConversationOutcome,
    ToolCallIntent,
    ToolInvocationResult,
)
from visitor_assistant.orchestrator.formatting import format_result
from visitor_assistant.orchestrator.naming import correct_tool_name
from visitor_assistant.orchestrator.parsing import CallParser, create_parser
from visitor_assistant.orchestrator.prompts import (
    ASSISTANT_PERSONA,
    build_summary_prompt,
    build_system_prompt,
    format_now,
)

logger = logging.getLogger(__name__)


class ConversationPhase(str, Enum):
    """States of one orchestration run."""
    INIT = "init"
    FETCH_TOOLS = "fetch_tools"
    FIRST_GENERATION = "first_generation"
    NO_INTENT = "no_intent"
    HAS_INTENT = "has_intent"
    CORRECT_NAME = "correct_name"
    INVOKE = "invoke"
    FORMAT = "format"
    SECOND_GENERATION = "second_generation"
    DONE = "done"


class ToolClient(Protocol):
    registry: ToolRegistry

    async def list_tools(self) -> list:
        ...

    async def invoke(self, tool_name: str, arguments: dict, context_id: int | str) -> ToolInvocationResult:
        ...


@dataclass
class ConversationTrace:
    """What happened during one run, for debugging and tests."""
    phases: list[ConversationPhase] = field(default_factory=list)
    first_response: str = ""
    intent: Optional[ToolCallIntent] = None
    tool_name: Optional[str] = None
    result: Optional[ToolInvocationResult] = None

    def enter(self, phase: ConversationPhase) -> None:
        logger.debug(f"Conversation phase: {phase.value}")
        self.phases.append(phase)

    @property
    def phase(self) -> ConversationPhase:
        return self.phases[-1] if self.phases else ConversationPhase.INIT


class ConversationOrchestrator:
    """Two-pass question answering over the record store's tools."""

    def __init__(
        self,
        client: ToolClient,
        engine: GenerationEngine,
        parser: CallParser | None = None,
        call_format: str = "structured",
        reserved: str = RESERVED_PARAMETER,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.client = client
        self.engine = engine
        self.registry = client.registry
        self.call_format = call_format
        self.reserved = reserved
        self.parser = parser or create_parser(call_format, self.registry, reserved=reserved)
        self.clock = clock

    @classmethod
    def from_config(
        cls,
        config: AssistantConfig,
        client: ToolClient,
        engine: GenerationEngine,
    ) -> ConversationOrchestrator:
        parser = create_parser(
            config.orchestrator.call_format,
            client.registry,
            default_parameter=config.orchestrator.default_parameter,
            reserved=config.mcp.reserved_parameter,
        )
        return cls(
            client,
            engine,
            parser=parser,
            call_format=config.orchestrator.call_format,
            reserved=config.mcp.reserved_parameter,
        )

    async def _refresh_tools(self) -> bool:
        """Refresh the catalogue; a failed refresh leaves the last good snapshot in place."""
        try:
            await self.client.list_tools()
        except McpError as e:
            logger.error(f"Error fetching tools, continuing without advertised tools: {e}")
            return False
        return True

    async def run(self, user_prompt: str, context_id: int | str) -> ConversationOutcome:
        """Answer one question for one site."""
        outcome, _ = await self.run_traced(user_prompt, context_id)
        return outcome

    async def run_traced(
        self, user_prompt: str, context_id: int | str
    ) -> tuple[ConversationOutcome, ConversationTrace]:
        trace = ConversationTrace()
        trace.enter(ConversationPhase.INIT)
        now = format_now(self.clock())

        trace.enter(ConversationPhase.FETCH_TOOLS)
        fetched = await self._refresh_tools()
        snapshot = self.registry.current()
        advertised = snapshot.tools if fetched else ()

        trace.enter(ConversationPhase.FIRST_GENERATION)
        system_prompt = build_system_prompt(advertised, now, self.call_format, self.reserved)
        logger.info(f"System prompt generated with {len(advertised)} tool(s)")
        first_response = await self.engine.generate(user_prompt, system_prompt)
        trace.first_response = first_response
        logger.debug(f"RAW AI RESPONSE: >>> {first_response} <<<")

        intent = self.parser.parse(first_response, snapshot)
        if intent is None:
            trace.enter(ConversationPhase.NO_INTENT)
            trace.enter(ConversationPhase.DONE)
            return ConversationOutcome(answer_text=first_response, timestamp=self.clock()), trace

        trace.enter(ConversationPhase.HAS_INTENT)
        trace.intent = intent

        trace.enter(ConversationPhase.CORRECT_NAME)
        tool_name = correct_tool_name(intent.tool_name, snapshot.ordered_names())
        if tool_name != intent.tool_name:
            logger.info(f"Corrected tool name '{intent.tool_name}' to '{tool_name}'")
        trace.tool_name = tool_name
        logger.info(f"AI requesting tool: {tool_name} with arguments: {intent.arguments}")

        trace.enter(ConversationPhase.INVOKE)
        result = await self.client.invoke(tool_name, intent.arguments, context_id)
        trace.result = result

        trace.enter(ConversationPhase.FORMAT)
        data_context = result.raw_payload if result.ok else result.display_text
        human_readable = format_result(data_context, self.reserved)

        trace.enter(ConversationPhase.SECOND_GENERATION)
        final_response = await self.engine.generate(
            build_summary_prompt(user_prompt, human_readable, now),
            ASSISTANT_PERSONA,
        )

        trace.enter(ConversationPhase.DONE)
        outcome = ConversationOutcome(
            answer_text=final_response,
            tool_used=tool_name,
            data_context=data_context,
            timestamp=self.clock(),
        )
        return outcome, trace
