"""Tests for heartbeat-based liveness filtering."""
from __future__ import annotations

from machinepool.health import claimable, filter_claimable, is_healthy
from machinepool.models import WorkerRecord, WorkerStatus, lease_fields


def test_is_healthy_boundary() -> None:
    """A heartbeat exactly max_age old still counts as healthy."""
    record = WorkerRecord(instance_id="i-1", last_heartbeat=1000.0)

    assert is_healthy(record, now=1060.0, max_age=60.0)
    assert not is_healthy(record, now=1060.001, max_age=60.0)


def test_filter_claimable_drops_leased_and_stale() -> None:
    records = [
        WorkerRecord(instance_id="fresh", last_heartbeat=990.0),
        WorkerRecord(instance_id="stale", last_heartbeat=900.0),
        WorkerRecord(
            instance_id="leased",
            status=WorkerStatus.LEASED,
            last_heartbeat=999.0,
            user_id="u1",
            lease_expiry=1600.0,
        ),
    ]

    result = filter_claimable(records, now=1000.0, max_age=60.0)

    assert [r.instance_id for r in result] == ["fresh"]


def test_stale_available_worker_is_not_claimable(store, clock) -> None:
    """An available worker past the staleness window is excluded."""
    store.register("i-old")
    clock.advance(61)
    store.register("i-new")

    result = claimable(store, clock(), max_age=60.0)

    assert [r.instance_id for r in result] == ["i-new"]


def test_heartbeat_restores_claimability(store, clock) -> None:
    store.register("i-1")
    clock.advance(120)
    assert claimable(store, clock(), max_age=60.0) == []

    store.heartbeat("i-1")

    assert [r.instance_id for r in claimable(store, clock(), max_age=60.0)] == ["i-1"]


def test_claimable_rereads_store(store, clock) -> None:
    """Each call reflects writes made since the previous call."""
    store.register("i-1")
    assert len(claimable(store, clock(), max_age=60.0)) == 1

    store.try_transition("i-1", WorkerStatus.AVAILABLE, lease_fields("u1", clock() + 600))

    assert claimable(store, clock(), max_age=60.0) == []
