"""Configuration management for toolloop."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLLOOP_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Tool-execution service (MCP)
    mcp_url: str = Field(default="http://localhost:9011/mcp", description="MCP server endpoint")
    mcp_transport: Literal["streamable-http", "sse"] = Field(default="streamable-http", description="MCP transport")
    mcp_timeout_seconds: float = Field(default=30.0, gt=0, description="MCP transport timeout in seconds")
    client_name: str = Field(default="micro agent", description="Client name announced in the MCP handshake")
    client_version: str = Field(default="0.0.0", description="Client version announced in the MCP handshake")

    # Completion service
    chat_url: str = Field(
        default="http://localhost:12434/engines/llama.cpp/v1/",
        description="OpenAI-compatible chat completions base URL",
    )
    model: str = Field(default="hf.co/menlo/jan-nano-gguf:q4_k_m", description="Model identifier")
    api_key: str = Field(default="", description="API key; local deployments need none")
    completion_timeout_seconds: float = Field(default=120.0, gt=0, description="Completion request timeout")

    # Loop
    max_turns: int = Field(default=25, gt=0, description="Hard cap on completion turns per run")
    lenient_arguments: bool = Field(
        default=True,
        description="Invoke tools with empty arguments when the payload cannot be decoded",
    )
    system_prompt: Optional[str] = Field(None, description="Optional system prompt seeding the conversation")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")


def get_settings(**overrides: Any) -> Settings:
    """Get application settings.

    Keyword overrides that are ``None`` are ignored so CLI options can be
    passed through unconditionally.

    Raises:
        ConfigurationError: if the resolved settings fail validation.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc
