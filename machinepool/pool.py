"""
Wiring of store, allocator and capacity controller behind one facade.

The HTTP layer and the CLI talk to a MachinePool; tests can build one
directly from an in-memory store and a static fleet.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from machinepool.allocator import LeaseAllocator
from machinepool.capacity import CapacityController
from machinepool.config import Settings, get_settings
from machinepool.exceptions import ValidationError
from machinepool.fleet.protocol import FleetControl
from machinepool.fleet.static import StaticFleet
from machinepool.models import ClaimOutcome, WorkerRecord
from machinepool.store.memory import InMemoryWorkerStore
from machinepool.store.protocol import WorkerStore

logger = logging.getLogger(__name__)


class MachinePool:
    """Register, heartbeat, claim and release workers."""

    def __init__(
        self,
        store: WorkerStore,
        fleet: FleetControl,
        *,
        target_available: int = 2,
        cooldown_seconds: float = 30.0,
        heartbeat_max_age: float = 60.0,
        lease_ttl: float = 600.0,
        worker_port: int = 8080,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.fleet = fleet
        self.controller = CapacityController(
            store,
            fleet,
            target_available=target_available,
            cooldown_seconds=cooldown_seconds,
            heartbeat_max_age=heartbeat_max_age,
            clock=clock,
        )
        self.allocator = LeaseAllocator(
            store,
            self.controller,
            lease_ttl=lease_ttl,
            heartbeat_max_age=heartbeat_max_age,
            worker_port=worker_port,
            clock=clock,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MachinePool":
        """Build the pool for the configured backend ("memory" or "aws")."""
        settings = settings or get_settings()
        store: WorkerStore
        fleet: FleetControl
        if settings.backend == "aws":
            from machinepool.fleet.autoscaling import AutoScalingFleet
            from machinepool.store.dynamodb import DynamoWorkerStore

            store = DynamoWorkerStore(
                settings.table_name,
                region=settings.region,
                timeout_seconds=settings.aws_timeout_seconds,
            )
            fleet = AutoScalingFleet(
                settings.fleet_name,
                region=settings.region,
                timeout_seconds=settings.aws_timeout_seconds,
            )
        else:
            store = InMemoryWorkerStore()
            fleet = StaticFleet(
                settings.fleet_name,
                desired=settings.static_fleet_desired,
                max_size=settings.static_fleet_max,
            )
        logger.info(
            "Machine pool using %s backend (fleet=%s, target_available=%d)",
            settings.backend,
            settings.fleet_name,
            settings.target_available,
        )
        return cls(
            store,
            fleet,
            target_available=settings.target_available,
            cooldown_seconds=settings.scale_cooldown_seconds,
            heartbeat_max_age=settings.heartbeat_max_age_seconds,
            lease_ttl=settings.lease_ttl_seconds,
            worker_port=settings.worker_port,
        )

    def register_worker(
        self,
        instance_id: str,
        public_ip: Optional[str] = None,
        private_ip: Optional[str] = None,
    ) -> WorkerRecord:
        if not instance_id:
            raise ValidationError("instanceId is required", details={"field": "instance_id"})
        record = self.store.register(instance_id, public_ip=public_ip, private_ip=private_ip)
        logger.info("Registered %s (public=%s, private=%s)", instance_id, public_ip, private_ip)
        return record

    def send_heartbeat(self, instance_id: str) -> None:
        if not instance_id:
            raise ValidationError("instanceId is required", details={"field": "instance_id"})
        self.store.heartbeat(instance_id)

    def claim_worker(self, user_id: str) -> ClaimOutcome:
        return self.allocator.claim(user_id)

    def release_worker(self, instance_id: str) -> WorkerRecord:
        return self.allocator.release(instance_id)


# Global pool singleton for the HTTP server
_pool: Optional[MachinePool] = None
_pool_lock = threading.Lock()


def get_pool() -> MachinePool:
    """Get the global machine pool."""
    global _pool
    with _pool_lock:
        if _pool is None:
            _pool = MachinePool.from_settings()
        return _pool


def set_pool(pool: MachinePool) -> None:
    """Install a preconfigured pool (tests, embedding)."""
    global _pool
    _pool = pool


def reset_pool() -> None:
    """Reset global pool. For testing only."""
    global _pool
    _pool = None
