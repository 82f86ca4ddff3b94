"""Abstract interfaces for external resource connectors and clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from ..apis.common import Managed
from ..context import CallContext

ConnectionDetails = dict[str, bytes]


@dataclass
class ExternalObservation:
    """What observe() learned about the external resource."""

    resource_exists: bool = False
    resource_up_to_date: bool = False
    # Spec fields were filled in from the observed resource; persist the object
    resource_late_initialized: bool = False
    connection_details: ConnectionDetails = field(default_factory=dict)


@dataclass
class ExternalCreation:
    connection_details: ConnectionDetails = field(default_factory=dict)


@dataclass
class ExternalUpdate:
    connection_details: ConnectionDetails = field(default_factory=dict)


@dataclass(frozen=True)
class CallOptions:
    """Per-call options forwarded to every remote call.

    ``retry`` and ``metadata`` are passed through as given; ``timeout`` is
    clamped to whatever is left of the caller's deadline.
    """

    retry: Any = None
    timeout: Optional[float] = None
    metadata: tuple[tuple[str, str], ...] = ()

    def for_call(self, ctx: CallContext) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if self.retry is not None:
            kwargs["retry"] = self.retry
        timeout = self.timeout
        remaining = ctx.remaining()
        if remaining is not None:
            timeout = remaining if timeout is None else min(timeout, remaining)
        if timeout is not None:
            kwargs["timeout"] = timeout
        if self.metadata:
            kwargs["metadata"] = self.metadata
        return kwargs


class ExternalClient(ABC):
    """The four primitive operations against one external resource kind.

    Every operation takes the caller's context and the managed resource,
    rejects resources of the wrong kind with ``TypeMismatchError`` and
    raises ``OperationCancelled`` when the context is done.
    """

    @abstractmethod
    def observe(self, ctx: CallContext, mg: Managed) -> ExternalObservation:
        """Read the external resource and record what was seen on ``mg.status``."""
        ...

    @abstractmethod
    def create(self, ctx: CallContext, mg: Managed) -> ExternalCreation:
        """Start creating the external resource."""
        ...

    @abstractmethod
    def update(self, ctx: CallContext, mg: Managed) -> ExternalUpdate:
        """Push the mutable subset of the spec to the external resource."""
        ...

    @abstractmethod
    def delete(self, ctx: CallContext, mg: Managed) -> None:
        """Start deleting the external resource."""
        ...


class ExternalConnector(ABC):
    """Builds an ExternalClient scoped to one managed resource's account."""

    @abstractmethod
    def connect(self, ctx: CallContext, mg: Managed) -> ExternalClient:
        ...
