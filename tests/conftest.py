"""Pytest configuration: shared fixtures and import path."""

import sys
from pathlib import Path

import pytest

# Ensure the project root is in sys.path for `from tests.fakes import ...`
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from machinepool.config import reset_settings  # noqa: E402
from machinepool.fleet.static import StaticFleet  # noqa: E402
from machinepool.pool import MachinePool, reset_pool  # noqa: E402
from machinepool.store.memory import InMemoryWorkerStore  # noqa: E402
from tests.fakes import FakeClock  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryWorkerStore:
    return InMemoryWorkerStore(clock=clock)


@pytest.fixture
def fleet() -> StaticFleet:
    return StaticFleet("test-fleet", desired=3, max_size=5)


@pytest.fixture
def pool(store: InMemoryWorkerStore, fleet: StaticFleet, clock: FakeClock) -> MachinePool:
    return MachinePool(
        store,
        fleet,
        target_available=2,
        cooldown_seconds=30.0,
        heartbeat_max_age=60.0,
        lease_ttl=600.0,
        clock=clock,
    )


@pytest.fixture(autouse=True)
def _reset_globals():
    yield
    reset_pool()
    reset_settings()
