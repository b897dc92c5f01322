"""Timeout and output-limit settings for CEO Agent commands.

Provides centralized timeout configuration using Pydantic BaseSettings
with environment variable support for operational tuning.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CommandTimeoutSettings(BaseSettings):
    """Command and collaborator timeout configuration."""

    command_timeout: int = Field(
        30, alias="COMMAND_TIMEOUT", description="Default shell command timeout in seconds"
    )

    build_timeout: int = Field(
        600, alias="BUILD_TIMEOUT", description="Image build timeout in seconds"
    )

    status_timeout: int = Field(
        15, alias="STATUS_TIMEOUT", description="Container listing timeout in seconds"
    )

    llm_timeout: int = Field(
        120, alias="LLM_TIMEOUT", description="LLM generation request timeout in seconds"
    )

    http_check_timeout: int = Field(
        5, alias="HTTP_CHECK_TIMEOUT", description="RPC/explorer reachability check timeout"
    )

    max_output_bytes: int = Field(
        1024 * 1024,
        alias="MAX_OUTPUT_BYTES",
        description="Captured output cap per stream before truncation",
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


# Global settings instance
timeout_settings = CommandTimeoutSettings()

# Executor defaults
COMMAND_TIMEOUT: int = timeout_settings.command_timeout
MAX_OUTPUT_BYTES: int = timeout_settings.max_output_bytes
