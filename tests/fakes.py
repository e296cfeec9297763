"""Shared test doubles for machinepool tests."""
from __future__ import annotations

import threading
from typing import Any, List, Mapping

from machinepool.models import WorkerRecord, WorkerStatus
from machinepool.store.memory import InMemoryWorkerStore


class FakeClock:
    """Manually advanced clock in epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self._now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self._now += seconds


class BarrierStore(InMemoryWorkerStore):
    """
    In-memory store whose list_by_status() blocks until `parties` readers
    have read. Forces every concurrent claim to see the same snapshot before
    any of them writes.
    """

    def __init__(self, parties: int, clock: FakeClock) -> None:
        super().__init__(clock=clock)
        self._barrier = threading.Barrier(parties, timeout=10)

    def list_by_status(self, status: WorkerStatus) -> List[WorkerRecord]:
        records = super().list_by_status(status)
        self._barrier.wait()
        return records


class CountingStore(InMemoryWorkerStore):
    """In-memory store that counts transition attempts."""

    def __init__(self, clock: FakeClock) -> None:
        super().__init__(clock=clock)
        self.transition_attempts: List[str] = []

    def try_transition(
        self,
        instance_id: str,
        expected_status: WorkerStatus,
        fields: Mapping[str, Any],
    ) -> WorkerRecord:
        self.transition_attempts.append(instance_id)
        return super().try_transition(instance_id, expected_status, fields)


class ReaddressingStore(InMemoryWorkerStore):
    """
    In-memory store where the worker re-registers with new addresses right
    after a reader lists it, so the reader's snapshot is stale but the worker
    is still available.
    """

    def __init__(self, clock: FakeClock, public_ip: str, private_ip: str) -> None:
        super().__init__(clock=clock)
        self._new_addresses = (public_ip, private_ip)

    def list_by_status(self, status: WorkerStatus) -> List[WorkerRecord]:
        records = super().list_by_status(status)
        for record in records:
            super().register(record.instance_id, *self._new_addresses)
        return records
