"""CloudMemorystoreInstance — desired state and observed state of a Redis instance."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Literal, Optional, get_args

from pydantic import BaseModel, Field

from .common import ConditionedStatus, Managed

Tier = Literal["TIER_UNSPECIFIED", "BASIC", "STANDARD_HA"]
ConnectMode = Literal["CONNECT_MODE_UNSPECIFIED", "DIRECT_PEERING", "PRIVATE_SERVICE_ACCESS"]

# Enum names accepted by the Cloud Redis v1 API
TIERS: tuple[str, ...] = get_args(Tier)
CONNECT_MODES: tuple[str, ...] = get_args(ConnectMode)


class CloudMemorystoreInstanceParameters(BaseModel):
    """User-supplied parameters, see the Cloud Redis v1 Instance resource."""

    region: str = ""
    tier: Optional[Tier] = None
    memory_size_gb: int = Field(0, ge=0)
    display_name: Optional[str] = None
    labels: dict[str, str] = Field(default_factory=dict)
    location_id: Optional[str] = None
    alternative_location_id: Optional[str] = None
    redis_version: Optional[str] = None
    reserved_ip_range: Optional[str] = None
    redis_configs: dict[str, str] = Field(default_factory=dict)
    authorized_network: Optional[str] = None
    connect_mode: Optional[ConnectMode] = None
    auth_enabled: Optional[bool] = None


class CloudMemorystoreInstanceSpec(BaseModel):
    provider_config_ref: str = "default"
    for_provider: CloudMemorystoreInstanceParameters = Field(
        default_factory=CloudMemorystoreInstanceParameters
    )


class CloudMemorystoreInstanceObservation(BaseModel):
    """Attributes read back from the API; never populated from user input."""

    name: str = ""
    host: str = ""
    port: int = 0
    current_location_id: str = ""
    create_time: Optional[datetime] = None
    state: str = ""
    status_message: str = ""
    persistence_iam_identity: str = ""


class CloudMemorystoreInstanceStatus(ConditionedStatus):
    at_provider: CloudMemorystoreInstanceObservation = Field(
        default_factory=CloudMemorystoreInstanceObservation
    )


class CloudMemorystoreInstance(Managed):
    kind: ClassVar[str] = "CloudMemorystoreInstance"

    spec: CloudMemorystoreInstanceSpec = Field(default_factory=CloudMemorystoreInstanceSpec)
    status: CloudMemorystoreInstanceStatus = Field(default_factory=CloudMemorystoreInstanceStatus)
