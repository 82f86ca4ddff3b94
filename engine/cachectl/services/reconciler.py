"""Reconciler — decides and performs the next action for one managed resource.

One pass is: connect, observe, then at most one of create / update /
delete. Nothing is remembered between passes; the managed resource handed
in (its status in particular) is the only state, so every pass can be
repeated safely.

    NonExistent --create--> Creating --observe READY--> Available
    Available --update--> Available
    Available | Creating | Unknown --delete--> Deleting
    Deleting --observe NOT_FOUND--> NonExistent

Errors are returned on the result for the caller to log and persist; the
reconciler never writes them into conditions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..apis.common import Managed
from ..context import CallContext
from ..errors import CachectlError
from ..providers.base import ConnectionDetails, ExternalClient, ExternalConnector, ExternalObservation
from ..providers.gcp.cloudmemorystore import State

logger = logging.getLogger(__name__)


class Action(str, Enum):
    OBSERVE = "observe"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Phase(str, Enum):
    NON_EXISTENT = "NonExistent"
    CREATING = "Creating"
    AVAILABLE = "Available"
    DELETING = "Deleting"
    UNKNOWN = "Unknown"


@dataclass
class ReconcileResult:
    """Outcome of one pass, for the caller to persist and schedule on."""

    action: Action = Action.OBSERVE
    phase: Phase = Phase.UNKNOWN
    # Remote lifecycle state as observed, "" when the resource is absent
    remote_state: str = ""
    observation: Optional[ExternalObservation] = None
    connection_details: ConnectionDetails = field(default_factory=dict)
    error: Optional[CachectlError] = None
    # The resource is gone and deletion was requested; drop the object
    finalized: bool = False
    # A follow-up pass is needed soon to confirm the outcome
    requeue: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None


def phase_of(observation: ExternalObservation, remote_state: str) -> Phase:
    """Map the remote lifecycle state written by observe() onto a phase."""
    if not observation.resource_exists:
        return Phase.NON_EXISTENT
    return {
        State.READY.value: Phase.AVAILABLE,
        State.CREATING.value: Phase.CREATING,
        State.DELETING.value: Phase.DELETING,
    }.get(remote_state, Phase.UNKNOWN)


def _remote_state(mg: Managed) -> str:
    at_provider = getattr(mg.status, "at_provider", None)
    return getattr(at_provider, "state", "") or ""


class Reconciler:
    """Drives one managed resource toward its spec, one action per pass."""

    def __init__(self, connector: ExternalConnector):
        self.connector = connector

    def reconcile(self, ctx: CallContext, mg: Managed) -> ReconcileResult:
        if not mg.metadata.external_name:
            mg.metadata.external_name = mg.metadata.name

        try:
            client = self.connector.connect(ctx, mg)
            observation = client.observe(ctx, mg)
        except CachectlError as e:
            logger.warning("Cannot observe %s: %s", mg.metadata.name, e)
            return ReconcileResult(error=e, requeue=True)

        remote_state = _remote_state(mg) if observation.resource_exists else ""
        result = ReconcileResult(
            phase=phase_of(observation, remote_state),
            remote_state=remote_state,
            observation=observation,
            connection_details=dict(observation.connection_details),
        )

        try:
            if mg.metadata.deletion_requested:
                self._finalize(ctx, client, mg, result)
            elif not observation.resource_exists:
                logger.info("%s does not exist, creating", mg.metadata.name)
                result.action = Action.CREATE
                result.requeue = True
                creation = client.create(ctx, mg)
                result.connection_details.update(creation.connection_details)
                result.phase = Phase.CREATING
            elif result.phase is Phase.AVAILABLE and not observation.resource_up_to_date:
                logger.info("%s is out of date, updating", mg.metadata.name)
                result.action = Action.UPDATE
                result.requeue = True
                update = client.update(ctx, mg)
                result.connection_details.update(update.connection_details)
            else:
                result.requeue = result.phase is not Phase.AVAILABLE
        except CachectlError as e:
            logger.warning("%s of %s failed: %s", result.action.value, mg.metadata.name, e)
            result.error = e
            result.requeue = True

        return result

    def _finalize(self, ctx: CallContext, client: ExternalClient, mg: Managed, result: ReconcileResult) -> None:
        if not result.observation.resource_exists:
            logger.info("%s is gone, finalized", mg.metadata.name)
            result.finalized = True
            return
        if result.phase is Phase.DELETING:
            # A delete is already in flight; wait for NOT_FOUND
            result.requeue = True
            return
        logger.info("%s deletion requested, deleting", mg.metadata.name)
        result.action = Action.DELETE
        result.requeue = True
        client.delete(ctx, mg)
        result.phase = Phase.DELETING
