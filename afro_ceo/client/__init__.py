"""Client-side access to the CEO Agent backend."""

from .api import CeoAgentClient
from .probe import HealthProbe

__all__ = ["CeoAgentClient", "HealthProbe"]
