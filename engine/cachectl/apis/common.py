"""Managed-resource building blocks shared by every resource kind.

A managed resource is a pydantic document with ``metadata``, a ``spec`` the
user owns and a ``status`` the engine owns. Status carries an ordered set of
conditions keyed by type.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Optional

from pydantic import BaseModel, Field

# Keys of the connection details handed to the secret-materialization step
CONNECTION_ENDPOINT_KEY = "endpoint"
CONNECTION_PORT_KEY = "port"


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------


class ConditionType(str, Enum):
    READY = "Ready"
    SYNCED = "Synced"


class ConditionReason(str, Enum):
    AVAILABLE = "Available"
    UNAVAILABLE = "Unavailable"
    CREATING = "Creating"
    DELETING = "Deleting"
    RECONCILE_SUCCESS = "ReconcileSuccess"
    RECONCILE_ERROR = "ReconcileError"


class Condition(BaseModel):
    type: ConditionType
    status: bool
    reason: ConditionReason
    message: str = ""
    last_transition_time: datetime = Field(default_factory=_now)

    def equal(self, other: Condition) -> bool:
        """Compare everything except the transition time."""
        return (
            self.type == other.type
            and self.status == other.status
            and self.reason == other.reason
            and self.message == other.message
        )


def available() -> Condition:
    return Condition(type=ConditionType.READY, status=True, reason=ConditionReason.AVAILABLE)


def unavailable() -> Condition:
    return Condition(type=ConditionType.READY, status=False, reason=ConditionReason.UNAVAILABLE)


def creating() -> Condition:
    return Condition(type=ConditionType.READY, status=False, reason=ConditionReason.CREATING)


def deleting() -> Condition:
    return Condition(type=ConditionType.READY, status=False, reason=ConditionReason.DELETING)


def reconcile_success() -> Condition:
    return Condition(type=ConditionType.SYNCED, status=True, reason=ConditionReason.RECONCILE_SUCCESS)


def reconcile_error(err: Exception) -> Condition:
    return Condition(
        type=ConditionType.SYNCED,
        status=False,
        reason=ConditionReason.RECONCILE_ERROR,
        message=str(err),
    )


class ConditionedStatus(BaseModel):
    conditions: list[Condition] = Field(default_factory=list)

    def get_condition(self, ctype: ConditionType) -> Optional[Condition]:
        for c in self.conditions:
            if c.type == ctype:
                return c
        return None

    def set_conditions(self, *conditions: Condition) -> None:
        """Overwrite conditions by type.

        A condition equal to the one already recorded (ignoring the
        timestamp) is not replaced, so its transition time is kept.
        """
        for new in conditions:
            for i, existing in enumerate(self.conditions):
                if existing.type != new.type:
                    continue
                if not existing.equal(new):
                    self.conditions[i] = new
                break
            else:
                self.conditions.append(new)


# ---------------------------------------------------------------------------
# Managed resource
# ---------------------------------------------------------------------------


class ObjectMeta(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    namespace: str = ""
    # Name of the resource in the external system; defaults to ``name``
    external_name: str = ""
    deletion_requested: bool = False


class Managed(BaseModel):
    """Base for every kind the engine can reconcile."""

    kind: ClassVar[str] = "Managed"

    metadata: ObjectMeta
    status: ConditionedStatus = Field(default_factory=ConditionedStatus)
