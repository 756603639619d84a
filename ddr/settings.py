from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Core
    db_path: str = os.getenv("DDR_DB_PATH", "ddr.db")
    owner_label: str = os.getenv("DDR_OWNER_LABEL", "owner")
    # 0 disables the periodic resync; the engine then only wakes on events.
    resync_interval_s: int = _env_int("DDR_RESYNC_INTERVAL_S", 30)
    event_retry_s: int = _env_int("DDR_EVENT_RETRY_S", 5)
    log_unmanaged: bool = _env_bool("DDR_LOG_UNMANAGED", True)

    # Docker
    docker_timeout_s: int = _env_int("DDR_DOCKER_TIMEOUT_S", 60)
    container_platform: str | None = os.getenv("DDR_CONTAINER_PLATFORM") or None

    # HTTP API
    api_host: str = os.getenv("DDR_API_HOST", "0.0.0.0")
    api_port: int = _env_int("DDR_API_PORT", 8000)


settings = Settings()
