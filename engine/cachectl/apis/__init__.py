"""cachectl resource kinds — re-export for convenient imports."""

from .cache import (
    CloudMemorystoreInstance,
    CloudMemorystoreInstanceObservation,
    CloudMemorystoreInstanceParameters,
    CloudMemorystoreInstanceSpec,
    CloudMemorystoreInstanceStatus,
)
from .common import Condition, ConditionReason, ConditionType, Managed, ObjectMeta

__all__ = [
    "CloudMemorystoreInstance",
    "CloudMemorystoreInstanceObservation",
    "CloudMemorystoreInstanceParameters",
    "CloudMemorystoreInstanceSpec",
    "CloudMemorystoreInstanceStatus",
    "Condition",
    "ConditionReason",
    "ConditionType",
    "Managed",
    "ObjectMeta",
]
