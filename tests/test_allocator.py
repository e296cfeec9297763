"""Tests for lease claim/release."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from machinepool.allocator import LeaseAllocator, connection_hint
from machinepool.capacity import CapacityController
from machinepool.exceptions import ValidationError, WorkerNotFoundError
from machinepool.fleet.static import StaticFleet
from machinepool.models import (
    ClaimConflict,
    Claimed,
    Pending,
    ScaleReason,
    WorkerStatus,
    lease_fields,
)
from tests.fakes import BarrierStore, CountingStore, FakeClock, ReaddressingStore


def make_allocator(store, clock, fleet=None, **kwargs):
    fleet = fleet or StaticFleet("test-fleet", desired=3, max_size=5)
    controller = CapacityController(
        store, fleet, target_available=2, cooldown_seconds=30.0, clock=clock
    )
    return LeaseAllocator(store, controller, clock=clock, **kwargs)


def test_register_then_claim_end_to_end(store, clock) -> None:
    """The only registered worker is leased with expiry = claim time + TTL."""
    store.register("i-w", public_ip="3.3.3.3", private_ip="10.0.0.9")
    allocator = make_allocator(store, clock, lease_ttl=600.0)

    outcome = allocator.claim("u1")

    assert isinstance(outcome, Claimed)
    assert outcome.instance_id == "i-w"
    assert outcome.public_ip == "3.3.3.3"
    assert outcome.private_ip == "10.0.0.9"
    assert outcome.lease_expiry == clock() + 600.0
    assert outcome.connection_hint == "http://3.3.3.3:8080"

    record = store.get("i-w")
    assert record.status == WorkerStatus.LEASED
    assert record.user_id == "u1"
    assert record.lease_expiry == outcome.lease_expiry


def test_claim_reports_addresses_from_the_written_record(clock) -> None:
    """A worker that re-registers between read and lease is reported at its new address."""
    store = ReaddressingStore(clock, public_ip="4.4.4.4", private_ip="10.0.0.2")
    store.register("i-w", public_ip="3.3.3.3", private_ip="10.0.0.1")
    allocator = make_allocator(store, clock)

    outcome = allocator.claim("u1")

    assert isinstance(outcome, Claimed)
    assert outcome.public_ip == "4.4.4.4"
    assert outcome.private_ip == "10.0.0.2"
    assert outcome.connection_hint == "http://4.4.4.4:8080"


@pytest.mark.parametrize("user_id", ["", "   "])
def test_claim_requires_user_id(store, clock, user_id) -> None:
    store.register("i-1")
    allocator = make_allocator(store, clock)

    with pytest.raises(ValidationError):
        allocator.claim(user_id)

    assert store.get("i-1").status == WorkerStatus.AVAILABLE


def test_claim_picks_lowest_instance_id(store, clock) -> None:
    for instance_id in ("i-c", "i-a", "i-b"):
        store.register(instance_id)
    allocator = make_allocator(store, clock)

    first = allocator.claim("u1")
    second = allocator.claim("u2")

    assert first.instance_id == "i-a"
    assert second.instance_id == "i-b"


def test_claim_skips_stale_workers(store, clock) -> None:
    store.register("i-a")
    clock.advance(90)
    store.register("i-b")
    allocator = make_allocator(store, clock)

    outcome = allocator.claim("u1")

    assert isinstance(outcome, Claimed)
    assert outcome.instance_id == "i-b"
    assert store.get("i-a").status == WorkerStatus.AVAILABLE


def test_claim_with_no_workers_returns_pending_and_scales(store, clock) -> None:
    fleet = StaticFleet("test-fleet", desired=3, max_size=5)
    allocator = make_allocator(store, clock, fleet=fleet)

    outcome = allocator.claim("u1")

    assert isinstance(outcome, Pending)
    assert outcome.decision.scaled
    assert outcome.decision.desired_after == 5
    assert "Retry" in outcome.message
    assert fleet.resize_calls == [5]


def test_claim_pending_at_max_capacity(store, clock) -> None:
    fleet = StaticFleet("test-fleet", desired=5, max_size=5)
    allocator = make_allocator(store, clock, fleet=fleet)

    outcome = allocator.claim("u1")

    assert isinstance(outcome, Pending)
    assert outcome.decision.reason == ScaleReason.AT_MAX_CAPACITY
    assert "maximum capacity" in outcome.message


def test_claim_pending_during_cooldown(store, clock) -> None:
    allocator = make_allocator(store, clock, fleet=StaticFleet(desired=0, max_size=10))

    allocator.claim("u1")
    outcome = allocator.claim("u2")

    assert isinstance(outcome, Pending)
    assert outcome.decision.reason == ScaleReason.COOLDOWN_ACTIVE


def test_leased_worker_is_not_claimable_again(store, clock) -> None:
    store.register("i-1")
    allocator = make_allocator(store, clock)

    allocator.claim("u1")
    outcome = allocator.claim("u2")

    assert isinstance(outcome, Pending)
    assert store.get("i-1").user_id == "u1"


def test_lost_race_returns_conflict_without_retrying(clock) -> None:
    """The write re-checks status; a worker leased since the read is a conflict."""
    store = CountingStore(clock)
    store.register("i-1")
    allocator = make_allocator(store, clock)
    real_list = store.list_by_status

    def list_then_race(status):
        records = real_list(status)
        # Another claimant wins between our read and our write.
        store.try_transition("i-1", WorkerStatus.AVAILABLE, lease_fields("rival", clock() + 600))
        return records

    store.list_by_status = list_then_race

    outcome = allocator.claim("u1")

    assert isinstance(outcome, ClaimConflict)
    assert outcome.instance_id == "i-1"
    assert store.transition_attempts == ["i-1", "i-1"]
    assert store.get("i-1").user_id == "rival"


def test_concurrent_claims_on_one_worker_have_one_winner() -> None:
    """N claims racing on one healthy worker: one Claimed, N-1 ClaimConflict."""
    clock = FakeClock()
    claimants = 8
    store = BarrierStore(claimants, clock)
    store.register("i-only")
    fleet = MagicMock()
    allocator = make_allocator(store, clock, fleet=fleet)

    with ThreadPoolExecutor(max_workers=claimants) as executor:
        outcomes = list(executor.map(allocator.claim, [f"u{i}" for i in range(claimants)]))

    winners = [o for o in outcomes if isinstance(o, Claimed)]
    conflicts = [o for o in outcomes if isinstance(o, ClaimConflict)]
    assert len(winners) == 1
    assert len(conflicts) == claimants - 1

    record = store.get("i-only")
    assert record.status == WorkerStatus.LEASED
    assert record.user_id == winners[0].user_id
    fleet.set_desired_size.assert_not_called()


def test_release_returns_worker_to_pool(store, clock) -> None:
    store.register("i-1")
    allocator = make_allocator(store, clock)
    allocator.claim("u1")

    record = allocator.release("i-1")

    assert record.status == WorkerStatus.AVAILABLE
    assert record.user_id is None
    assert record.lease_expiry is None
    assert isinstance(allocator.claim("u2"), Claimed)


def test_release_is_idempotent(store, clock) -> None:
    """Releasing an available worker leaves status and addresses unchanged."""
    store.register("i-1", public_ip="3.3.3.3", private_ip="10.0.0.1")
    before = store.get("i-1")
    allocator = make_allocator(store, clock)

    allocator.release("i-1")
    allocator.release("i-1")

    after = store.get("i-1")
    assert after == before


def test_release_does_not_check_lease_owner(store, clock) -> None:
    store.register("i-1")
    allocator = make_allocator(store, clock)
    allocator.claim("u1")

    allocator.release("i-1")

    assert store.get("i-1").status == WorkerStatus.AVAILABLE


def test_release_requires_instance_id(store, clock) -> None:
    with pytest.raises(ValidationError):
        make_allocator(store, clock).release("")


def test_release_unknown_worker(store, clock) -> None:
    with pytest.raises(WorkerNotFoundError):
        make_allocator(store, clock).release("i-ghost")
    assert len(store) == 0


def test_connection_hint_without_public_ip() -> None:
    assert connection_hint("1.2.3.4", 9000) == "http://1.2.3.4:9000"
    assert "No public IP" in connection_hint(None, 8080)
