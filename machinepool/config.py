"""
Configuration from environment variables.

Usage:
    from machinepool.config import get_settings

    settings = get_settings()
    print(settings.table_name, settings.fleet_name)

A .env file in the working directory is loaded first; variables already
set in the environment win.
"""

from functools import lru_cache
import os
from typing import Optional

from dotenv import load_dotenv

from machinepool.exceptions import ConfigurationError

BACKENDS = ("memory", "aws")


def _int(name: str, default: int, minimum: Optional[int] = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer", details={name: raw})
    if minimum is not None and value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}", details={name: raw})
    return value


def _float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number", details={name: raw})
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}", details={name: raw})
    return value


class Settings:
    """Service configuration loaded from environment variables."""

    def __init__(self) -> None:
        # Server
        self.host: str = os.getenv("MACHINEPOOL_HOST", "0.0.0.0")
        self.port: int = _int("MACHINEPOOL_PORT", 3000)

        # Backends
        self.backend: str = os.getenv("MACHINEPOOL_BACKEND", "memory").strip().lower()
        if self.backend not in BACKENDS:
            raise ConfigurationError(
                f"MACHINEPOOL_BACKEND must be one of {', '.join(BACKENDS)}",
                details={"MACHINEPOOL_BACKEND": self.backend},
            )
        self.region: str = os.getenv("AWS_REGION", "ap-south-1")
        self.table_name: str = os.getenv("MACHINEPOOL_TABLE_NAME", "machine_pool")
        self.fleet_name: str = os.getenv("MACHINEPOOL_FLEET_NAME", "on-demand-machine-asg")
        self.aws_timeout_seconds: float = _float("MACHINEPOOL_AWS_TIMEOUT_SECONDS", 5.0)

        # In-memory fleet used by the memory backend
        self.static_fleet_desired: int = _int("MACHINEPOOL_STATIC_FLEET_DESIRED", 0)
        self.static_fleet_max: int = _int("MACHINEPOOL_STATIC_FLEET_MAX", 10)

        # Capacity policy
        self.target_available: int = _int("MACHINEPOOL_TARGET_AVAILABLE", 2)
        self.scale_cooldown_seconds: float = _float("MACHINEPOOL_SCALE_COOLDOWN_SECONDS", 30.0)

        # Leases and liveness
        self.heartbeat_max_age_seconds: float = _float(
            "MACHINEPOOL_HEARTBEAT_MAX_AGE_SECONDS", 60.0
        )
        self.lease_ttl_seconds: float = _float("MACHINEPOOL_LEASE_TTL_SECONDS", 600.0)
        self.worker_port: int = _int("MACHINEPOOL_WORKER_PORT", 8080, minimum=1)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    load_dotenv()
    return Settings()


def reset_settings() -> None:
    """Clear settings cache. For testing only."""
    get_settings.cache_clear()
