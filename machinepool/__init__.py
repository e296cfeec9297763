"""
machinepool - lease ephemeral worker machines, keep a buffer of claimable ones.

Library use:
    from machinepool import MachinePool, InMemoryWorkerStore, StaticFleet

    pool = MachinePool(InMemoryWorkerStore(), StaticFleet(max_size=5))
    pool.register_worker("i-0abc", public_ip="3.1.2.3")
    outcome = pool.claim_worker("user-1")      # Claimed | Pending | ClaimConflict
    pool.release_worker("i-0abc")

HTTP API:
    uvicorn machinepool.server:app --port 3000

Worker agent:
    python -m machinepool agent --backend-url http://broker:3000
"""

from machinepool.allocator import LeaseAllocator  # noqa: F401
from machinepool.capacity import CapacityController  # noqa: F401
from machinepool.exceptions import (  # noqa: F401
    CapacityExhaustedError,
    ConfigurationError,
    ConflictError,
    DependencyFailureError,
    FleetNotFoundError,
    PoolError,
    ValidationError,
    WorkerNotFoundError,
)
from machinepool.fleet import FleetControl, StaticFleet  # noqa: F401
from machinepool.models import (  # noqa: F401
    ClaimConflict,
    ClaimOutcome,
    Claimed,
    FleetSize,
    Pending,
    ScaleDecision,
    ScaleReason,
    WorkerRecord,
    WorkerStatus,
)
from machinepool.pool import MachinePool  # noqa: F401
from machinepool.store import InMemoryWorkerStore, WorkerStore  # noqa: F401

__version__ = "0.1.0"
