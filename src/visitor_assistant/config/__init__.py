"""Configuration management for the visitor assistant."""
from .settings import (
    AssistantConfig,
    McpConfig,
    LLMConfig,
    OrchestratorConfig,
    LoggingConfig,
    WebConfig,
    load_config,
    configure_logging,
)

__all__ = [
    "AssistantConfig",
    "McpConfig",
    "LLMConfig",
    "OrchestratorConfig",
    "LoggingConfig",
    "WebConfig",
    "load_config",
    "configure_logging",
]
