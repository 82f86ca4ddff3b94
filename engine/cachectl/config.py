"""cachectl configuration — loads from environment and local config files."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


def _find_repo_root() -> Path:
    """Walk up from this file to find the repo root (where pyproject.toml lives)."""
    p = Path(__file__).resolve().parent
    while p != p.parent:
        if (p / "pyproject.toml").exists():
            return p
        p = p.parent
    return Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Application settings — populated from env vars or .env file."""

    # App
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False

    # Database
    database_url: str = ""

    # Remote calls (seconds). call_timeout bounds a single Cloud Redis call,
    # reconcile_timeout bounds a whole observe/act pass for one instance.
    call_timeout: float = 60.0
    reconcile_timeout: float = 120.0

    # Driver
    reconcile_workers: int = 4
    reconcile_interval: int = 60

    # Paths
    repo_root: Path = _find_repo_root()

    model_config = {"env_prefix": "CACHECTL_", "env_file": ".env"}

    @property
    def local_dir(self) -> Path:
        return self.repo_root / "local"

    @property
    def data_dir(self) -> Path:
        d = self.local_dir / "data"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def effective_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'cachectl.db'}"


settings = Settings()
