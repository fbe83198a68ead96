"""Tool-calling conversation orchestration."""
from .conversation import (
    ConversationOrchestrator,
    ConversationPhase,
    ConversationTrace,
)
from .formatting import format_result
from .naming import correct_tool_name, edit_distance
from .parsing import (
    CallParser,
    StructuredCallParser,
    TaggedCall,
    TaggedCallParser,
    create_parser,
)

__all__ = [
    "ConversationOrchestrator",
    "ConversationPhase",
    "ConversationTrace",
    "format_result",
    "correct_tool_name",
    "edit_distance",
    "CallParser",
    "StructuredCallParser",
    "TaggedCall",
    "TaggedCallParser",
    "create_parser",
]
