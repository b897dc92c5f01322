"""Configuration management for the CEO Agent server."""

import os
import re
from pathlib import Path
from typing import Any

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from ..models.stack import OperationMode
from .command_policy import DEFAULT_ALLOWED_PREFIXES, validate_prefixes
from .exceptions import ConfigurationError
from .settings import timeout_settings

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = "config/ceo-agent.yml"


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"  # nosec B104 - runs inside the compose network
    port: int = Field(default=3000, ge=1, le=65535)
    log_level: str = "INFO"
    api_prefix: str = "/api"
    data_dir: str = "/app/data"


class StackConfig(BaseModel):
    """Compose deployment the dispatcher operates on."""

    working_dir: str = "."
    compose_command: list[str] = Field(default_factory=lambda: ["docker-compose"])
    compose_file: str | None = None
    container_prefix: str = "afro"
    enforce_mode_subset: bool = True
    command_allowlist: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_PREFIXES))
    git_remote: str = "origin"
    git_branch: str = "main"
    command_timeout: int = Field(default=timeout_settings.command_timeout, ge=1)
    build_timeout: int = Field(default=timeout_settings.build_timeout, ge=1)
    status_timeout: int = Field(default=timeout_settings.status_timeout, ge=1)
    max_output_bytes: int = Field(default=timeout_settings.max_output_bytes, ge=1024)
    status_retry_attempts: int = Field(default=1, ge=1, le=10)
    status_retry_backoff: float = Field(default=0.5, ge=0)


class OllamaConfig(BaseModel):
    """Local LLM server used by the chat and proposal endpoints."""

    base_url: str = "http://ollama:11434"
    model: str = "llama3"
    timeout: int = Field(default=timeout_settings.llm_timeout, ge=1)


class GitHubConfig(BaseModel):
    """Issue tracker integration; disabled unless both token and repo are set."""

    token: str | None = None
    repo: str | None = None
    api_url: str = "https://api.github.com"

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.repo and "/" in self.repo)


class NetworkConfig(BaseModel):
    """Public endpoints of the Afro Network deployment."""

    mainnet_rpc_url: str | None = None
    testnet_rpc_url: str | None = None
    mainnet_explorer_url: str | None = None
    testnet_explorer_url: str | None = None
    check_timeout: int = Field(default=timeout_settings.http_check_timeout, ge=1)
    monitor_interval_seconds: int = Field(default=0, ge=0)


class CeoAgentConfig(BaseSettings):
    """Main configuration for the CEO Agent server."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    stack: StackConfig = Field(default_factory=StackConfig)
    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    modes: list[OperationMode] | None = None
    config_file: str = Field(default=DEFAULT_CONFIG_PATH, alias="CEO_AGENT_CONFIG")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def load_config(config_path: str | None = None) -> CeoAgentConfig:
    """Load configuration from defaults, a YAML file and the environment.

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Loaded and validated configuration

    Raises:
        ConfigurationError: If the file is unreadable or the result is invalid
    """
    load_dotenv()

    path = Path(config_path or os.getenv("CEO_AGENT_CONFIG", DEFAULT_CONFIG_PATH))
    data: dict[str, Any] = {}
    if path.exists():
        data = _load_yaml_config(path)

    try:
        config = CeoAgentConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e

    config.config_file = str(path)
    _apply_env_overrides(config)
    validate_config(config)
    return config


def validate_config(config: CeoAgentConfig) -> None:
    """Fail fast on settings the server cannot run safely with."""
    validate_prefixes(config.stack.command_allowlist)

    if not config.stack.compose_command:
        raise ConfigurationError("stack.compose_command cannot be empty")

    if not config.server.api_prefix.startswith("/"):
        raise ConfigurationError("server.api_prefix must start with '/'")

    if config.modes is not None:
        if not config.modes:
            raise ConfigurationError("modes section is present but empty")
        ids = [mode.id for mode in config.modes]
        duplicates = sorted({mode_id for mode_id in ids if ids.count(mode_id) > 1})
        if duplicates:
            raise ConfigurationError(f"duplicate operation mode ids: {', '.join(duplicates)}")


def _apply_env_overrides(config: CeoAgentConfig) -> None:
    """Apply environment variable overrides (highest priority)."""
    if host := os.getenv("CEO_HOST"):
        config.server.host = host
    if port_env := os.getenv("CEO_PORT") or os.getenv("PORT"):
        try:
            config.server.port = int(port_env)
        except ValueError as e:
            raise ConfigurationError(f"Invalid port '{port_env}'") from e
    if log_level := os.getenv("LOG_LEVEL"):
        config.server.log_level = log_level
    if data_dir := os.getenv("CEO_DATA_DIR"):
        config.server.data_dir = data_dir

    if workdir := os.getenv("STACK_WORKDIR"):
        config.stack.working_dir = workdir
    if compose_file := os.getenv("COMPOSE_FILE"):
        config.stack.compose_file = compose_file
    if allowlist := os.getenv("COMMAND_ALLOWLIST"):
        config.stack.command_allowlist = [p.strip() for p in allowlist.split(",")]

    env_fields = {
        ("ollama", "base_url"): "OLLAMA_BASE_URL",
        ("ollama", "model"): "OLLAMA_MODEL",
        ("github", "token"): "GITHUB_TOKEN",
        ("github", "repo"): "GITHUB_REPO",
        ("network", "mainnet_rpc_url"): "MAINNET_RPC_URL",
        ("network", "testnet_rpc_url"): "TESTNET_RPC_URL",
        ("network", "mainnet_explorer_url"): "MAINNET_EXPLORER_URL",
        ("network", "testnet_explorer_url"): "TESTNET_EXPLORER_URL",
    }
    for (section, field), env_var in env_fields.items():
        if value := os.getenv(env_var):
            setattr(getattr(config, section), field, value)


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load YAML configuration file."""
    try:
        content = config_path.read_text(encoding="utf-8")
        content = _expand_yaml_config(content)
        loaded = yaml.safe_load(content)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config from {config_path}: {e}") from e

    # yaml.safe_load can return None, str, list, etc.
    if not isinstance(loaded, dict):
        return {}
    return loaded


def _expand_yaml_config(content: str) -> str:
    """Securely expand environment variables with allowlist."""
    allowed_env_vars = {
        "HOME",
        "USER",
        "CEO_DATA_DIR",
        "STACK_WORKDIR",
        "COMPOSE_FILE",
        "OLLAMA_BASE_URL",
        "OLLAMA_MODEL",
        "GITHUB_TOKEN",
        "GITHUB_REPO",
        "MAINNET_RPC_URL",
        "TESTNET_RPC_URL",
        "MAINNET_EXPLORER_URL",
        "TESTNET_EXPLORER_URL",
    }

    def replace_var(match):
        var_name = match.group(1)
        if var_name in allowed_env_vars:
            return os.getenv(var_name, match.group(0))  # Keep original if not found
        logger.warning(
            "Environment variable not in allowlist, skipping expansion",
            variable=var_name,
        )
        return match.group(0)

    return re.sub(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}", replace_var, content)
