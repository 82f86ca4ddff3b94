"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Any, Callable

import pytest
from google.cloud import redis_v1
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import sessionmaker

import cachectl.models  # noqa: F401  (registers mappers)
from cachectl.apis.cache import (
    CloudMemorystoreInstance,
    CloudMemorystoreInstanceParameters,
    CloudMemorystoreInstanceSpec,
)
from cachectl.apis.common import ObjectMeta
from cachectl.db import Base

NAMESPACE = "cool-namespace"
REGION = "us-cool1"
PROJECT = "coolProject"
INSTANCE_NAME = "claimns-claimname-8sdh3"
QUALIFIED_NAME = f"projects/{PROJECT}/locations/{REGION}/instances/{INSTANCE_NAME}"
MEMORY_SIZE_GB = 1
HOST = "172.16.0.1"
PORT = 6379
AUTHORIZED_NETWORK = "default"
CONNECT_MODE = "DIRECT_PEERING"
REDIS_CONFIGS = {"cool": "socool"}


@pytest.fixture()
def session_factory():
    """Session factory over a fresh in-memory database shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def make_instance() -> Callable[..., CloudMemorystoreInstance]:
    """Build a CloudMemorystoreInstance; keyword arguments override parameters."""

    def _make(name: str = INSTANCE_NAME, provider: str = "default", **params: Any) -> CloudMemorystoreInstance:
        fields: dict[str, Any] = {
            "region": REGION,
            "memory_size_gb": MEMORY_SIZE_GB,
            "authorized_network": AUTHORIZED_NETWORK,
            "connect_mode": CONNECT_MODE,
            "redis_configs": dict(REDIS_CONFIGS),
        }
        fields.update(params)
        return CloudMemorystoreInstance(
            metadata=ObjectMeta(name=name, namespace=NAMESPACE, external_name=name),
            spec=CloudMemorystoreInstanceSpec(
                provider_config_ref=provider,
                for_provider=CloudMemorystoreInstanceParameters(**fields),
            ),
        )

    return _make


@pytest.fixture()
def make_redis() -> Callable[..., redis_v1.Instance]:
    """Build the Cloud Redis instance the API would report back."""

    def _make(state: str = "READY", **overrides: Any) -> redis_v1.Instance:
        fields: dict[str, Any] = {
            "name": QUALIFIED_NAME,
            "state": redis_v1.Instance.State[state],
            "memory_size_gb": MEMORY_SIZE_GB,
            "host": HOST,
            "port": PORT,
            "authorized_network": AUTHORIZED_NETWORK,
            "connect_mode": redis_v1.Instance.ConnectMode[CONNECT_MODE],
            "redis_configs": dict(REDIS_CONFIGS),
        }
        fields.update(overrides)
        return redis_v1.Instance(**fields)

    return _make
