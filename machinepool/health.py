"""
Heartbeat-based liveness filtering.

A worker is claimable when it is available and has heartbeated within the
staleness window. Nothing here caches: claimable() re-reads the store on
every call, so two calls microseconds apart may disagree.
"""
from __future__ import annotations

from typing import Iterable, List

from machinepool.models import WorkerRecord, WorkerStatus
from machinepool.store.protocol import WorkerStore


def is_healthy(record: WorkerRecord, now: float, max_age: float) -> bool:
    """True if the last heartbeat is at most max_age seconds old."""
    return (now - record.last_heartbeat) <= max_age


def filter_claimable(
    records: Iterable[WorkerRecord], now: float, max_age: float
) -> List[WorkerRecord]:
    return [
        record
        for record in records
        if record.status == WorkerStatus.AVAILABLE and is_healthy(record, now, max_age)
    ]


def claimable(store: WorkerStore, now: float, max_age: float) -> List[WorkerRecord]:
    """Available, healthy workers as of a fresh store read."""
    return filter_claimable(store.list_by_status(WorkerStatus.AVAILABLE), now, max_age)
