"""Command execution with timeout, output caps and structured results.

Every call returns a ``CommandResult``; spawn failures, non-zero exits and
timeouts are reported in the result instead of being raised.
"""

import asyncio
import os
import re
import shlex
import time
from typing import Any, Optional

import structlog

from ..models.stack import CommandResult
from .command_policy import CommandPolicy
from .settings import COMMAND_TIMEOUT, MAX_OUTPUT_BYTES

logger = structlog.get_logger()

KILL_TIMEOUT = 5  # Time to wait after SIGTERM before SIGKILL
READ_CHUNK_SIZE = 64 * 1024
WARNING_PATTERN = re.compile(r"\bWARN(ING)?\b")


class CommandExecutor:
    """Runs allow-listed commands as child processes with proper cleanup."""

    def __init__(
        self,
        policy: CommandPolicy | None = None,
        *,
        working_dir: Optional[str] = None,
        timeout: float = COMMAND_TIMEOUT,
        max_output_bytes: int = MAX_OUTPUT_BYTES,
        env: Optional[dict[str, str]] = None,
    ):
        self.policy = policy or CommandPolicy()
        self.working_dir = working_dir
        self.timeout = timeout
        self.max_output_bytes = max_output_bytes
        self.env = env
        self._active_processes: set[asyncio.subprocess.Process] = set()
        self._cleanup_lock = asyncio.Lock()

    async def execute(
        self,
        command: str,
        *,
        timeout: Optional[float] = None,
        cwd: Optional[str] = None,
    ) -> CommandResult:
        """Run a raw command string after checking it against the allow-list.

        A command that is not permitted never reaches process creation.
        """
        permitted, reason = self.policy.check(command)
        if not permitted:
            logger.warning("Rejected command", command=command, reason=reason)
            return CommandResult(
                success=False,
                error=f"command not permitted: {reason}",
                command=command,
            )
        return await self.run(self.policy.split(command), timeout=timeout, cwd=cwd)

    async def run(
        self,
        cmd: list[str],
        *,
        timeout: Optional[float] = None,
        cwd: Optional[str] = None,
        max_output_bytes: Optional[int] = None,
    ) -> CommandResult:
        """
        Run an argument vector and capture its outcome.

        Args:
            cmd: Command and arguments as a list (no shell is involved)
            timeout: Timeout in seconds (default: executor timeout)
            cwd: Working directory (default: executor working dir)
            max_output_bytes: Per-stream capture cap (default: executor cap)

        Returns:
            CommandResult describing success, output, error and exit code
        """
        timeout = self.timeout if timeout is None else timeout
        cwd = cwd or self.working_dir
        limit = self.max_output_bytes if max_output_bytes is None else max_output_bytes
        command_str = shlex.join(cmd)
        started = time.perf_counter()

        logger.debug("Executing command", command=command_str, timeout=timeout, cwd=cwd)

        kwargs: dict[str, Any] = {
            "cwd": cwd,
            "env": self.env or os.environ.copy(),
            "stdin": asyncio.subprocess.DEVNULL,
            "stdout": asyncio.subprocess.PIPE,
            "stderr": asyncio.subprocess.PIPE,
        }

        try:
            process = await asyncio.create_subprocess_exec(*cmd, **kwargs)
        except (OSError, ValueError) as e:
            logger.error("Failed to spawn command", command=command_str, error=str(e))
            return CommandResult(
                success=False,
                error=f"spawn failed: {e}",
                command=command_str,
                duration_ms=_elapsed_ms(started),
            )

        async with self._cleanup_lock:
            self._active_processes.add(process)

        try:
            try:
                (stdout, out_truncated), (stderr, err_truncated), _ = await asyncio.wait_for(
                    asyncio.gather(
                        _drain(process.stdout, limit),
                        _drain(process.stderr, limit),
                        process.wait(),
                    ),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Command timed out, terminating process",
                    command=command_str,
                    timeout=timeout,
                    pid=process.pid,
                )
                await _terminate(process)
                return CommandResult(
                    success=False,
                    error="timeout",
                    exit_code=None,
                    command=command_str,
                    duration_ms=_elapsed_ms(started),
                )
        finally:
            async with self._cleanup_lock:
                self._active_processes.discard(process)
            if process.returncode is None:
                await _terminate(process)

        output = stdout.decode(errors="replace")
        stderr_text = stderr.decode(errors="replace")
        truncated = out_truncated or err_truncated
        if truncated:
            logger.warning("Command output truncated", command=command_str, limit_bytes=limit)

        exit_code = process.returncode
        if exit_code == 0:
            warnings = [
                line.strip() for line in stderr_text.splitlines() if WARNING_PATTERN.search(line)
            ]
            for warning in warnings:
                logger.warning("Command reported warning", command=command_str, warning=warning)
            # Compose writes progress to stderr; keep it with the output
            if stderr_text.strip() and not output.strip():
                output = stderr_text
            return CommandResult(
                success=True,
                output=output,
                exit_code=0,
                truncated=truncated,
                command=command_str,
                warnings=warnings,
                duration_ms=_elapsed_ms(started),
            )

        error = stderr_text.strip() or f"exit code {exit_code}"
        logger.info(
            "Command failed", command=command_str, exit_code=exit_code, error=error[:500]
        )
        return CommandResult(
            success=False,
            output=output,
            error=error,
            exit_code=exit_code,
            truncated=truncated,
            command=command_str,
            duration_ms=_elapsed_ms(started),
        )

    @property
    def active_count(self) -> int:
        return len(self._active_processes)

    async def cleanup_all(self) -> None:
        """Terminate every process still tracked by this executor."""
        async with self._cleanup_lock:
            processes = list(self._active_processes)

        if not processes:
            return

        logger.info("Cleaning up active processes", count=len(processes))
        await asyncio.gather(*(_terminate(p) for p in processes))

        async with self._cleanup_lock:
            self._active_processes.clear()


async def _drain(stream: Optional[asyncio.StreamReader], limit: int) -> tuple[bytes, bool]:
    """Read a stream to EOF, keeping at most ``limit`` bytes."""
    if stream is None:
        return b"", False

    buffer = bytearray()
    truncated = False
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        room = limit - len(buffer)
        if room > 0:
            buffer.extend(chunk[:room])
        if len(chunk) > room:
            truncated = True
    return bytes(buffer), truncated


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """SIGTERM, then SIGKILL after the grace period."""
    if process.returncode is not None:
        return
    try:
        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=KILL_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("Process did not terminate gracefully, sending SIGKILL", pid=process.pid)
            process.kill()
            await process.wait()
    except ProcessLookupError:
        # Process already terminated
        pass


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
