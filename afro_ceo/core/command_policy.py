"""Allow-list guard for raw commands reaching the executor."""

import shlex
from collections.abc import Iterable

import structlog

from .exceptions import ConfigurationError

logger = structlog.get_logger()

# Rejected outright, even though commands are exec'd without a shell.
SHELL_METACHARACTERS = (";", "|", "&", "$", "`", ">", "<", "\n", "\r")

DEFAULT_ALLOWED_PREFIXES: tuple[str, ...] = (
    "docker ps",
    "docker logs",
    "docker inspect",
    "docker images",
    "docker stats --no-stream",
    "docker-compose ps",
    "docker-compose logs",
    "docker-compose up -d",
    "docker-compose down",
    "docker-compose stop",
    "docker-compose restart",
    "docker-compose build",
    "docker-compose pull",
    "docker compose ps",
    "docker compose logs",
    "docker compose up -d",
    "docker compose down",
    "docker compose stop",
    "docker compose restart",
    "docker compose build",
    "docker compose pull",
)


def validate_prefixes(prefixes: Iterable[str]) -> tuple[tuple[str, ...], ...]:
    """Tokenize and validate allow-list entries.

    Raises:
        ConfigurationError: If the list is empty or an entry is malformed
    """
    parsed: list[tuple[str, ...]] = []
    for entry in prefixes:
        if not isinstance(entry, str) or not entry.strip():
            raise ConfigurationError("command allow-list contains an empty entry")
        if any(char in entry for char in SHELL_METACHARACTERS):
            raise ConfigurationError(
                f"command allow-list entry '{entry}' contains shell metacharacters"
            )
        try:
            tokens = tuple(shlex.split(entry))
        except ValueError as e:
            raise ConfigurationError(f"command allow-list entry '{entry}' is malformed: {e}") from e
        parsed.append(tokens)

    if not parsed:
        raise ConfigurationError("command allow-list is empty")
    return tuple(parsed)


class CommandPolicy:
    """Token-wise prefix allow-list for raw command strings."""

    def __init__(self, prefixes: Iterable[str] = DEFAULT_ALLOWED_PREFIXES):
        self._prefixes = validate_prefixes(prefixes)
        self.logger = logger.bind(component="command_policy")

    @property
    def prefixes(self) -> list[str]:
        return [" ".join(tokens) for tokens in self._prefixes]

    def check(self, command: str) -> tuple[bool, str]:
        """Validate a raw command against the allow-list.

        Args:
            command: Full command string as received from the caller

        Returns:
            Tuple of (is_permitted: bool, reason: str)
        """
        if not command or not command.strip():
            return False, "empty command"

        for char in SHELL_METACHARACTERS:
            if char in command:
                return False, f"shell metacharacter {char!r} is not allowed"

        try:
            tokens = shlex.split(command)
        except ValueError as e:
            return False, f"unparsable command: {e}"

        for prefix in self._prefixes:
            if tuple(tokens[: len(prefix)]) == prefix:
                return True, f"matches allow-listed prefix '{' '.join(prefix)}'"

        return False, "no allow-listed prefix matches"

    def split(self, command: str) -> list[str]:
        """Return the argument vector for a command that passed ``check``."""
        return shlex.split(command)
