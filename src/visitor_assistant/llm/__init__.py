"""Generation engine access.

Usage:
    from visitor_assistant.llm import create_engine, ThreadedGenerationEngine

    # HTTP provider from config
    engine = create_engine(config.llm)

    # In-process blocking model
    engine = ThreadedGenerationEngine(my_model.generate)
"""
from .client import (
    GenerationEngine,
    HttpGenerationEngine,
    ThreadedGenerationEngine,
    build_chat_prompt,
    clean_generation,
    create_engine,
)

__all__ = [
    "GenerationEngine",
    "HttpGenerationEngine",
    "ThreadedGenerationEngine",
    "build_chat_prompt",
    "clean_generation",
    "create_engine",
]
