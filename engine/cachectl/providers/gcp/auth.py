"""GCP authentication — service-account credentials and API client factory."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

from google.cloud import redis_v1
from google.oauth2 import service_account

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

RedisClientFactory = Callable[[service_account.Credentials], Any]


def load_service_account(credentials_path: str) -> service_account.Credentials:
    """Load a service-account JSON key. Reads the file; makes no network calls."""
    if not credentials_path:
        raise ValueError("no credentials path configured")
    path = Path(credentials_path).expanduser()
    if not path.is_file():
        raise FileNotFoundError(f"GCP credentials not found: {path}")
    return service_account.Credentials.from_service_account_file(
        str(path), scopes=[CLOUD_PLATFORM_SCOPE]
    )


def default_redis_client(credentials: service_account.Credentials) -> redis_v1.CloudRedisClient:
    return redis_v1.CloudRedisClient(credentials=credentials)


class GCPClients:
    """Lazily-initialised credentials and Cloud Redis client for one provider config."""

    def __init__(
        self,
        credentials_path: str,
        project_id: str = "",
        client_factory: Optional[RedisClientFactory] = None,
    ):
        self.credentials_path = credentials_path
        self._project_id = project_id
        self._client_factory = client_factory or default_redis_client
        self._credentials: Optional[service_account.Credentials] = None
        self._redis: Any = None

    @property
    def credentials(self) -> service_account.Credentials:
        if self._credentials is None:
            self._credentials = load_service_account(self.credentials_path)
        return self._credentials

    @property
    def project_id(self) -> str:
        """Configured project, falling back to the key's own project."""
        if self._project_id:
            return self._project_id
        return getattr(self.credentials, "project_id", None) or ""

    @property
    def redis(self) -> Any:
        if self._redis is None:
            self._redis = self._client_factory(self.credentials)
        return self._redis
