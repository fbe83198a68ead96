"""Assistant configuration loading and validation.

Loads YAML configuration for the visitor assistant with full validation.
Values missing from the file fall back to environment variables (a .env file
is honoured), then to local development defaults.
"""
from __future__ import annotations
import logging
import os
import sys
import yaml
from pathlib import Path
from typing import Literal, Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from visitor_assistant.exceptions import ConfigError

load_dotenv()

DEFAULT_CONFIG_PATH = Path("config/visitor-assistant.yaml")


class McpConfig(BaseModel):
    """Record store (MCP server) connection."""
    base_url: str = Field(
        default_factory=lambda: os.getenv("MCP_SERVER_URL", "http://localhost:5000"),
        description="MCP server base URL"
    )
    endpoint_path: str = Field("/api/mcp", description="JSON-RPC endpoint path")
    timeout: float = Field(30.0, gt=0, description="Request timeout (seconds)")
    reserved_parameter: str = Field("siteId", min_length=1, description="Tenant key hidden from the model")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate MCP server URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with 'http://' or 'https://'")
        return v

    @property
    def url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.endpoint_path.lstrip("/")


class LLMConfig(BaseModel):
    """Generation engine configuration."""
    provider: Literal["ollama", "vllm", "openai"] = Field(
        default_factory=lambda: os.getenv("LLM_PROVIDER", "ollama"),
        description="LLM provider"
    )
    model: str = Field(
        default_factory=lambda: os.getenv("LLM_MODEL", "phi3.5:3.8b"),
        description="Model name"
    )
    base_url: str = Field(
        default_factory=lambda: os.getenv("LLM_BASE_URL", "http://localhost:11434"),
        description="Provider API URL"
    )
    api_key: Optional[str] = Field(None, description="API key (vllm/openai)")
    temperature: float = Field(0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(2048, ge=1, le=32768)
    timeout: float = Field(120.0, gt=0, description="Request timeout (seconds)")

    def model_post_init(self, __context) -> None:
        """Validate provider-specific configuration."""
        if self.provider == "openai" and not (self.api_key or os.getenv("OPENAI_API_KEY")):
            raise ValueError("api_key or OPENAI_API_KEY required when provider=openai")


class OrchestratorConfig(BaseModel):
    """Conversation orchestration options."""
    call_format: Literal["structured", "tagged"] = Field(
        "structured", description="Tool call encoding the model is prompted to emit"
    )
    default_parameter: str = Field("query", description="Fallback parameter name for tagged calls")
    default_site_id: int = Field(1001, description="Site used when a request names none")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field("INFO", description="Log level")
    format: str = Field("%(asctime)s %(levelname)s %(name)s: %(message)s")


class WebConfig(BaseModel):
    """HTTP front door configuration."""
    host: str = Field("0.0.0.0")
    port: int = Field(8080, ge=1, le=65535)


class AssistantConfig(BaseModel):
    """Complete assistant configuration."""
    mcp: McpConfig = Field(default_factory=McpConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> AssistantConfig:
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Validated AssistantConfig instance

        Raises:
            ConfigError: If the file is missing, empty or invalid
        """
        config_path = Path(path)

        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        if not data:
            raise ConfigError(f"Empty configuration file: {config_path}")

        try:
            return cls.model_validate(data)
        except ValueError as e:
            raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    @classmethod
    def from_env(cls, env_var: str = "VISITOR_ASSISTANT_CONFIG") -> AssistantConfig:
        """Load configuration from the path in an environment variable.

        Falls back to config/visitor-assistant.yaml, then to pure environment
        defaults when neither is present.
        """
        config_path = os.getenv(env_var)
        if config_path:
            return cls.from_yaml(config_path)

        if DEFAULT_CONFIG_PATH.exists():
            return cls.from_yaml(DEFAULT_CONFIG_PATH)

        try:
            return cls()
        except ValueError as e:
            raise ConfigError(f"Invalid configuration from environment: {e}") from e

    def log_redacted(self) -> dict:
        """Get configuration dict with secrets redacted for logging."""
        config_dict = self.model_dump()
        if config_dict["llm"].get("api_key"):
            config_dict["llm"]["api_key"] = "***"
        return config_dict


def load_config(config_path: str | Path | None = None) -> AssistantConfig:
    """Load assistant configuration from file or environment.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Validated AssistantConfig instance

    Raises:
        ConfigError: If configuration is invalid or not found
    """
    if config_path:
        return AssistantConfig.from_yaml(config_path)

    return AssistantConfig.from_env()


def configure_logging(config: LoggingConfig) -> None:
    """Configure root logging for an entry point."""
    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format=config.format,
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )
