"""
Afro Network CEO Agent Server

Stack orchestration backend for the Afro Network dashboard: reports which
service groups are running, starts/stops/restarts them per operation mode,
syncs the repository, and hosts the CEO chat and proposal features. The
HTTP routes and the ``afro_stack`` MCP tool share one FastMCP app.
"""

import argparse
import os
import sys
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Any

from fastmcp import FastMCP
from pydantic import Field, ValidationError

from .core.command_executor import CommandExecutor
from .core.command_policy import CommandPolicy
from .core.config_loader import CeoAgentConfig, load_config
from .core.exceptions import AfroCeoError, ConfigurationError
from .core.logging_config import get_server_logger
from .core.store import RecordStore
from .middleware import ErrorHandlingMiddleware, LoggingMiddleware, TimingMiddleware
from .models.enums import StackAction
from .models.params import StackToolParams
from .models.stack import OperationRequest
from .routes import SERVICE_NAME, HttpRoutes
from .services import (
    ChatService,
    DockerCliService,
    GitHubIssueClient,
    NetworkMonitor,
    NetworkStatusChecker,
    OllamaClient,
    OperationModeRegistry,
    ProposalService,
    RepositorySyncService,
    StackOperationDispatcher,
    StackStatusReconciler,
)
from .services.llm import build_ceo_context
from .services.modes import DEFAULT_MODES
from .services.status import RetryPolicy


class AfroCeoServer:
    """Wires configuration into the services and exposes them over HTTP and MCP."""

    def __init__(
        self,
        config: CeoAgentConfig,
        *,
        executor: CommandExecutor | None = None,
        store: RecordStore | None = None,
    ):
        self.config = config
        self.logger = get_server_logger()
        stack = config.stack

        self.registry = OperationModeRegistry(config.modes or DEFAULT_MODES)
        self.executor = executor or CommandExecutor(
            CommandPolicy(stack.command_allowlist),
            working_dir=stack.working_dir,
            timeout=stack.command_timeout,
            max_output_bytes=stack.max_output_bytes,
        )

        self.status_reconciler = StackStatusReconciler(
            self.executor,
            container_prefix=stack.container_prefix,
            timeout=stack.status_timeout,
            retry_policy=RetryPolicy(
                max_attempts=stack.status_retry_attempts,
                initial_backoff=stack.status_retry_backoff,
            ),
        )
        self.dispatcher = StackOperationDispatcher(
            self.executor,
            self.registry,
            compose_command=stack.compose_command,
            compose_file=stack.compose_file,
            timeout=stack.command_timeout,
            enforce_mode_subset=stack.enforce_mode_subset,
        )
        self.repository = RepositorySyncService(
            self.executor,
            compose_base=self.dispatcher.compose_base(),
            git_remote=stack.git_remote,
            git_branch=stack.git_branch,
            timeout=stack.command_timeout,
            build_timeout=stack.build_timeout,
        )
        self.docker_cli = DockerCliService(self.executor, self.registry)

        self.llm = OllamaClient(
            config.ollama.base_url,
            config.ollama.model,
            system_context=build_ceo_context(config.network),
            timeout=config.ollama.timeout,
        )
        self.github = GitHubIssueClient(config.github)
        self.network = NetworkStatusChecker(config.network)
        self.store = store or RecordStore(Path(config.server.data_dir))
        self.chat_service = ChatService(self.store, self.llm, self.github, self.network)
        self.proposal_service = ProposalService(self.store, self.llm, self.github)

        # Built by build_app()
        self.app: FastMCP | None = None

        self.logger.info(
            "CEO Agent server initialized",
            modes=self.registry.mode_ids,
            compose_command=self.dispatcher.compose_base(),
            working_dir=stack.working_dir,
            github_enabled=self.github.enabled,
        )

    def build_app(self) -> FastMCP:
        """Create the FastMCP app with middleware, the MCP tool and HTTP routes."""
        if self.app is not None:
            return self.app

        self.app = FastMCP("Afro CEO Agent", lifespan=self._lifespan)
        self._configure_middleware()

        self.app.tool(
            self.afro_stack,
            annotations={
                "title": "Afro Network Stack Management",
                "readOnlyHint": False,
                "destructiveHint": True,  # stop without services runs compose down
                "idempotentHint": False,
                "openWorldHint": False,
            },
        )

        HttpRoutes(self).register(self.app, self.config.server.api_prefix)
        self.logger.info("FastMCP app initialized", api_prefix=self.config.server.api_prefix)
        return self.app

    def _configure_middleware(self) -> None:
        """First added = first executed."""
        if self.app is None:
            return
        self.app.add_middleware(
            ErrorHandlingMiddleware(
                include_traceback=self.config.server.log_level.upper() == "DEBUG",
                track_error_stats=True,
            )
        )
        self.app.add_middleware(
            TimingMiddleware(
                slow_request_threshold_ms=_parse_env_float("SLOW_REQUEST_THRESHOLD_MS", 30000.0)
            )
        )
        self.app.add_middleware(
            LoggingMiddleware(
                include_payloads=os.getenv("LOG_INCLUDE_PAYLOADS", "true").lower() == "true",
                max_payload_length=int(_parse_env_float("LOG_MAX_PAYLOAD_LENGTH", 1000)),
            )
        )

    @asynccontextmanager
    async def _lifespan(self, app: FastMCP):
        await self.store.initialize()
        try:
            yield {}
        finally:
            await self.executor.cleanup_all()

    async def afro_stack(
        self,
        action: Annotated[str | StackAction, Field(description="Action to perform")],
        mode: Annotated[
            str | None, Field(default=None, description="Operation mode id (start/stop/restart)")
        ] = None,
        services: Annotated[
            list[str] | None, Field(default=None, description="Target service ids")
        ] = None,
        service: Annotated[str, Field(default="", description="Service id (logs)")] = "",
        lines: Annotated[
            int, Field(default=100, ge=1, le=5000, description="Number of log lines to retrieve")
        ] = 100,
    ) -> dict[str, Any]:
        """Consolidated Afro Network stack management tool.

        Actions:
        • status: Running/stopped flag per service group

        • modes: List operation modes and their services

        • start/stop/restart: Stack lifecycle
          - Optional: mode, services (no services = whole deployment;
            stop without services runs compose down)

        • pull: git pull of the deployment repository

        • build: Rebuild all images without cache

        • logs: Recent container logs
          - Required: service
          - Optional: lines
        """
        try:
            params = StackToolParams(
                action=action, mode=mode, services=services or [], service=service, lines=lines
            )
        except ValidationError as e:
            return {
                "success": False,
                "error": f"Parameter validation failed: {e}",
                "action": str(action) if action else "unknown",
            }

        try:
            return await self._handle_stack_action(params)
        except AfroCeoError as e:
            return {"success": False, "error": str(e), "action": params.action.value}

    async def _handle_stack_action(self, params: StackToolParams) -> dict[str, Any]:
        action = params.action
        if action is StackAction.STATUS:
            return (await self.status_reconciler.get_status()).model_dump()
        if action is StackAction.MODES:
            return {
                "success": True,
                "modes": [m.model_dump() for m in self.registry.list_modes()],
            }
        if action in (StackAction.START, StackAction.STOP, StackAction.RESTART):
            request = OperationRequest(
                operation=action.value, mode=params.mode, services=params.services
            )
            return (await self.dispatcher.dispatch(request)).model_dump()
        if action in (StackAction.PULL, StackAction.BUILD):
            return (await self.repository.git_operation(action.value)).model_dump()
        if not params.service:
            return {"success": False, "error": "service is required for logs", "action": action.value}
        return (await self.docker_cli.service_logs(params.service, params.lines)).model_dump()

    def run(self) -> None:
        """Run the HTTP server (blocking)."""
        try:
            app = self.build_app()
            self.logger.info(
                "Starting CEO Agent server",
                host=self.config.server.host,
                port=self.config.server.port,
                service=SERVICE_NAME,
            )
            app.run(
                transport="http",
                host=self.config.server.host,
                port=self.config.server.port,
            )
        except Exception as e:
            self.logger.error("Server startup failed", error=str(e))
            raise


def _parse_env_float(var_name: str, default: float) -> float:
    try:
        return float(os.getenv(var_name, str(default)))
    except ValueError:
        return default


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    from dotenv import load_dotenv

    load_dotenv()

    parser = argparse.ArgumentParser(description="Afro Network CEO Agent")
    parser.add_argument("--host", default=None, help="Server host (overrides config)")
    parser.add_argument("--port", type=int, default=None, help="Server port (overrides config)")
    parser.add_argument(
        "--config",
        default=os.getenv("CEO_AGENT_CONFIG"),
        help="Configuration file path",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument(
        "--validate-config", action="store_true", help="Validate configuration and exit"
    )
    return parser.parse_args()


def main() -> None:
    """Main entry point."""
    args = parse_args()

    log_dir = _setup_log_directory()
    logger = _setup_logging_system(args, log_dir)

    try:
        config = _load_and_configure(args, logger)
    except ConfigurationError as e:
        logger.error("Configuration error", error=str(e))
        sys.exit(1)
    if config is None:  # Validation-only mode
        return

    server = AfroCeoServer(config)
    _setup_network_monitor(server, logger)
    _run_server(server, logger)


def _setup_log_directory() -> str | None:
    """First writable of LOG_DIR, <data dir>/logs, user and temp fallbacks."""
    log_dir_candidates = [
        os.getenv("LOG_DIR"),
        str(Path(os.getenv("CEO_DATA_DIR", "/app/data")) / "logs"),
        str(Path.home() / ".local" / "share" / "afro-ceo-agent" / "logs"),
        str(Path(tempfile.gettempdir()) / "afro-ceo-agent-logs"),
    ]

    for candidate in log_dir_candidates:
        if candidate:
            try:
                candidate_path = Path(candidate)
                candidate_path.mkdir(parents=True, exist_ok=True)
                if candidate_path.is_dir() and os.access(candidate_path, os.W_OK):
                    return str(candidate_path)
            except OSError:
                continue

    print("Warning: Unable to create log directory, using console-only logging")
    return None


def _setup_logging_system(args, log_dir: str | None):
    from .core.logging_config import setup_logging

    try:
        max_file_size_mb = int(os.getenv("LOG_FILE_SIZE_MB", "10"))
        if max_file_size_mb < 1 or max_file_size_mb > 100:
            max_file_size_mb = 10
    except ValueError:
        max_file_size_mb = 10

    setup_logging(log_dir=log_dir, log_level=args.log_level, max_file_size_mb=max_file_size_mb)
    logger = get_server_logger()
    logger.info(
        "Logging system initialized",
        log_dir=log_dir,
        log_level=args.log_level,
        max_file_size_mb=max_file_size_mb,
        file_logging=log_dir is not None,
    )
    return logger


def _load_and_configure(args, logger) -> CeoAgentConfig | None:
    """Load configuration, returning None for validation-only mode."""
    config = load_config(args.config)

    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port
    config.server.log_level = args.log_level

    if args.validate_config:
        logger.info(
            "Configuration is valid",
            config_file=config.config_file,
            modes=[m.id for m in (config.modes or DEFAULT_MODES)],
        )
        return None

    return config


def _setup_network_monitor(server: AfroCeoServer, logger) -> None:
    """Run the network monitor in a background thread when an interval is configured."""
    import asyncio
    import threading

    interval = server.config.network.monitor_interval_seconds
    if interval <= 0:
        logger.info("Network monitor disabled")
        return

    monitor = NetworkMonitor(server.network, server.github, interval_seconds=interval)

    def run_monitor():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        loop.run_until_complete(monitor.run_forever())

    monitor_thread = threading.Thread(target=run_monitor, name="network-monitor", daemon=True)
    monitor_thread.start()
    logger.info("Network monitor enabled", interval_seconds=interval)


def _run_server(server: AfroCeoServer, logger) -> None:
    try:
        server.run()
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except Exception as e:
        logger.error("Server error", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
