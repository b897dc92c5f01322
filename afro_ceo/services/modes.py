"""Operation mode registry: the declarative mode -> services table."""

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from ..core.exceptions import ConfigurationError, ModeNotFoundError
from ..models.stack import OperationMode

# Container name of the CEO agent itself; compose service is "ceo"
CEO_CONTAINER = "afro-ceo"

# Compose service id -> container name, where the two differ
CONTAINER_NAMES: Mapping[str, str] = MappingProxyType({"ceo": CEO_CONTAINER})

MAINNET_SERVICES = ("afro-validator", "afro-db", "afro-explorer")
TESTNET_SERVICES = ("afro-testnet-validator", "afro-testnet-db", "afro-testnet-explorer")

DEFAULT_MODES: tuple[OperationMode, ...] = (
    OperationMode(
        id="production",
        name="Production",
        description="Full mainnet with explorer and website",
        services=(*MAINNET_SERVICES, "afro-web", "ceo"),
    ),
    OperationMode(
        id="testnet",
        name="Testnet Only",
        description="Testnet validator with explorer for development",
        services=TESTNET_SERVICES,
    ),
    OperationMode(
        id="dual",
        name="Dual Network",
        description="Both mainnet and testnet running simultaneously",
        services=(*MAINNET_SERVICES, *TESTNET_SERVICES),
    ),
    OperationMode(
        id="website",
        name="Website Only",
        description="Static website without blockchain services",
        services=("afro-web",),
    ),
    OperationMode(
        id="development",
        name="Development",
        description="All services for local development",
        services=(*MAINNET_SERVICES, *TESTNET_SERVICES, "afro-web", "ceo"),
    ),
)


class OperationModeRegistry:
    """Immutable lookup of operation modes and the closed set of service ids.

    Service ids are compose service names; stack commands only accept those.
    Each service id also maps to the container it runs as, which is what
    ``docker logs`` needs.
    """

    def __init__(
        self,
        modes: Iterable[OperationMode] = DEFAULT_MODES,
        container_names: Mapping[str, str] = CONTAINER_NAMES,
    ):
        table: dict[str, OperationMode] = {}
        for mode in modes:
            if mode.id in table:
                raise ConfigurationError(f"duplicate operation mode id '{mode.id}'")
            table[mode.id] = mode
        if not table:
            raise ConfigurationError("at least one operation mode is required")

        self._modes = MappingProxyType(table)
        services = [s for mode in table.values() for s in mode.services]
        self._known_services = frozenset(services)
        self._containers = MappingProxyType(
            {s: container_names.get(s, s) for s in self._known_services}
        )

    def list_modes(self) -> list[OperationMode]:
        """All modes in declaration order."""
        return list(self._modes.values())

    def resolve(self, mode_id: str) -> OperationMode:
        """Look up a mode by id.

        Raises:
            ModeNotFoundError: If the id is not registered (a client error)
        """
        try:
            return self._modes[mode_id]
        except KeyError:
            raise ModeNotFoundError(mode_id, list(self._modes)) from None

    @property
    def mode_ids(self) -> list[str]:
        return list(self._modes)

    @property
    def known_services(self) -> frozenset[str]:
        return self._known_services

    def is_known_service(self, service_id: str) -> bool:
        return service_id in self._known_services

    def unknown_services(self, service_ids: Iterable[str]) -> list[str]:
        """Return the ids (in input order) that are not known services."""
        return [s for s in service_ids if s not in self._known_services]

    def container_name(self, name: str) -> str | None:
        """Container for a service id; a known container name maps to itself.

        Returns None when ``name`` is neither.
        """
        if name in self._containers:
            return self._containers[name]
        if name in self._containers.values():
            return name
        return None
