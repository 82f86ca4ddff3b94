"""Translation between CloudMemorystoreInstance and Cloud Redis v1 messages.

Pure functions: nothing here talks to the network.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from google.cloud import redis_v1
from google.protobuf import field_mask_pb2

from ...apis.cache import (
    CONNECT_MODES,
    TIERS,
    CloudMemorystoreInstance,
    CloudMemorystoreInstanceObservation,
    CloudMemorystoreInstanceParameters,
)
from ...apis.common import CONNECTION_ENDPOINT_KEY, CONNECTION_PORT_KEY


class State(str, Enum):
    """Lifecycle states reported by Cloud Redis.

    The API may grow new states; ``translate_state`` passes those through
    as plain strings instead of failing.
    """

    UNSPECIFIED = "STATE_UNSPECIFIED"
    CREATING = "CREATING"
    READY = "READY"
    UPDATING = "UPDATING"
    DELETING = "DELETING"
    REPAIRING = "REPAIRING"
    MAINTENANCE = "MAINTENANCE"
    IMPORTING = "IMPORTING"
    FAILING_OVER = "FAILING_OVER"


# Fields update_instance is allowed to change
UPDATE_MASK_PATHS = ("memory_size_gb", "display_name", "labels", "redis_configs")


@dataclass(frozen=True)
class InstanceID:
    project: str
    region: str
    instance: str

    @property
    def parent(self) -> str:
        return f"projects/{self.project}/locations/{self.region}"

    @property
    def name(self) -> str:
        return f"{self.parent}/instances/{self.instance}"


def new_instance_id(project: str, cr: CloudMemorystoreInstance, default_region: str = "") -> InstanceID:
    return InstanceID(
        project=project,
        region=cr.spec.for_provider.region or default_region,
        instance=cr.metadata.external_name or cr.metadata.name,
    )


# ---------------------------------------------------------------------------
# Enum helpers
# ---------------------------------------------------------------------------


def _enum_name(value: Any) -> str:
    # proto-plus hands back a plain int for values it has no name for
    return getattr(value, "name", None) or str(value)


def _enum_value(enum_cls: Any, name: str | None) -> Any:
    if not name:
        return enum_cls(0)
    try:
        return enum_cls[name]
    except KeyError:
        raise ValueError(f"unknown {enum_cls.__name__} '{name}'") from None


def translate_state(value: Any) -> str:
    raw = _enum_name(value)
    try:
        return State(raw).value
    except ValueError:
        return raw


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


def generate_redis_instance(instance_id: InstanceID, params: CloudMemorystoreInstanceParameters) -> redis_v1.Instance:
    return redis_v1.Instance(
        name=instance_id.name,
        tier=_enum_value(redis_v1.Instance.Tier, params.tier),
        memory_size_gb=params.memory_size_gb,
        display_name=params.display_name or "",
        labels=dict(params.labels),
        location_id=params.location_id or "",
        alternative_location_id=params.alternative_location_id or "",
        redis_version=params.redis_version or "",
        reserved_ip_range=params.reserved_ip_range or "",
        redis_configs=dict(params.redis_configs),
        authorized_network=params.authorized_network or "",
        connect_mode=_enum_value(redis_v1.Instance.ConnectMode, params.connect_mode),
        auth_enabled=bool(params.auth_enabled),
    )


def new_get_instance_request(instance_id: InstanceID) -> redis_v1.GetInstanceRequest:
    return redis_v1.GetInstanceRequest(name=instance_id.name)


def new_create_instance_request(instance_id: InstanceID, cr: CloudMemorystoreInstance) -> redis_v1.CreateInstanceRequest:
    return redis_v1.CreateInstanceRequest(
        parent=instance_id.parent,
        instance_id=instance_id.instance,
        instance=generate_redis_instance(instance_id, cr.spec.for_provider),
    )


def new_update_instance_request(instance_id: InstanceID, cr: CloudMemorystoreInstance) -> redis_v1.UpdateInstanceRequest:
    params = cr.spec.for_provider
    return redis_v1.UpdateInstanceRequest(
        update_mask=field_mask_pb2.FieldMask(paths=list(UPDATE_MASK_PATHS)),
        instance=redis_v1.Instance(
            name=instance_id.name,
            memory_size_gb=params.memory_size_gb,
            display_name=params.display_name or "",
            labels=dict(params.labels),
            redis_configs=dict(params.redis_configs),
        ),
    )


def new_delete_instance_request(instance_id: InstanceID) -> redis_v1.DeleteInstanceRequest:
    return redis_v1.DeleteInstanceRequest(name=instance_id.name)


# ---------------------------------------------------------------------------
# Observation
# ---------------------------------------------------------------------------


def generate_observation(instance: redis_v1.Instance) -> CloudMemorystoreInstanceObservation:
    create_time = instance.create_time
    return CloudMemorystoreInstanceObservation(
        name=instance.name,
        host=instance.host,
        port=instance.port,
        current_location_id=instance.current_location_id,
        create_time=(
            datetime.fromtimestamp(create_time.timestamp(), tz=timezone.utc) if create_time else None
        ),
        state=translate_state(instance.state),
        status_message=instance.status_message,
        persistence_iam_identity=instance.persistence_iam_identity,
    )


def late_initialize_spec(params: CloudMemorystoreInstanceParameters, instance: redis_v1.Instance) -> bool:
    """Fill spec fields the user left unset from the observed instance.

    Values the user supplied are never overwritten. Returns True when
    anything changed.
    """
    before = params.model_dump()

    # Enum names this client does not know yet are left unset
    if not params.tier and _enum_name(instance.tier) in TIERS:
        params.tier = _enum_name(instance.tier)
    if not params.connect_mode and _enum_name(instance.connect_mode) in CONNECT_MODES:
        params.connect_mode = _enum_name(instance.connect_mode)
    if not params.memory_size_gb:
        params.memory_size_gb = instance.memory_size_gb
    params.display_name = params.display_name or instance.display_name or None
    params.location_id = params.location_id or instance.location_id or None
    params.alternative_location_id = (
        params.alternative_location_id or instance.alternative_location_id or None
    )
    params.redis_version = params.redis_version or instance.redis_version or None
    params.reserved_ip_range = params.reserved_ip_range or instance.reserved_ip_range or None
    params.authorized_network = params.authorized_network or instance.authorized_network or None
    if not params.labels and instance.labels:
        params.labels = dict(instance.labels)
    if not params.redis_configs and instance.redis_configs:
        params.redis_configs = dict(instance.redis_configs)
    if params.auth_enabled is None and instance.auth_enabled:
        params.auth_enabled = True

    return params.model_dump() != before


def is_up_to_date(params: CloudMemorystoreInstanceParameters, instance: redis_v1.Instance) -> bool:
    """Compare the updatable fields only; the rest cannot be changed in place."""
    return (
        params.memory_size_gb == instance.memory_size_gb
        and (params.display_name or "") == instance.display_name
        and dict(params.labels) == dict(instance.labels)
        and dict(params.redis_configs) == dict(instance.redis_configs)
    )


def connection_details(obs: CloudMemorystoreInstanceObservation) -> dict[str, bytes]:
    """Endpoint and port as bytes, or nothing until both are reported."""
    if not obs.host or not obs.port:
        return {}
    return {
        CONNECTION_ENDPOINT_KEY: obs.host.encode(),
        CONNECTION_PORT_KEY: str(obs.port).encode(),
    }
