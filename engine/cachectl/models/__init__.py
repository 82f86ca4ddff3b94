"""cachectl data models — re-export all models for convenient imports."""

from .action_log import ActionLog
from .instance import ManagedInstance
from .provider import ProviderConfig

__all__ = [
    "ActionLog",
    "ManagedInstance",
    "ProviderConfig",
]
