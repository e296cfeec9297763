"""
Lease allocation over the worker store.

claim() reads the claimable set, picks one worker and leases it with a
conditional write (available -> leased). The read and the write are not
atomic together, so the write re-checks the status; a lost race comes back
as a ClaimConflict outcome and the caller starts over with a fresh claim().

When nothing is claimable the capacity controller is asked to grow the fleet
and the caller gets a Pending outcome. There is no retry or backoff here.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from machinepool import telemetry
from machinepool.capacity import CapacityController
from machinepool.exceptions import ConflictError, ValidationError
from machinepool.health import claimable
from machinepool.models import (
    ClaimConflict,
    ClaimOutcome,
    Claimed,
    Pending,
    ScaleDecision,
    ScaleReason,
    WorkerRecord,
    WorkerStatus,
    lease_fields,
    release_fields,
)
from machinepool.store.protocol import WorkerStore

logger = logging.getLogger(__name__)

_PENDING_MESSAGES = {
    None: "No machines available. Scaling up. Retry in a few seconds.",
    ScaleReason.COOLDOWN_ACTIVE: "No machines available. Scale-out in progress. Retry in a few seconds.",
    ScaleReason.BUFFER_SATISFIED: "Machines became available. Retry now.",
    ScaleReason.AT_MAX_CAPACITY: "No machines available and the fleet is at maximum capacity.",
}


def connection_hint(public_ip: Optional[str], port: int) -> str:
    if public_ip:
        return f"http://{public_ip}:{port}"
    return "No public IP. Connect through the private address."


def pending_message(decision: ScaleDecision) -> str:
    return _PENDING_MESSAGES[decision.reason]


class LeaseAllocator:
    """Claims and releases workers on behalf of users."""

    def __init__(
        self,
        store: WorkerStore,
        controller: CapacityController,
        *,
        lease_ttl: float = 600.0,
        heartbeat_max_age: float = 60.0,
        worker_port: int = 8080,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._controller = controller
        self.lease_ttl = lease_ttl
        self.heartbeat_max_age = heartbeat_max_age
        self.worker_port = worker_port
        self._clock = clock

    def claim(self, user_id: str) -> ClaimOutcome:
        """
        Lease one claimable worker to user_id.

        The claimable worker with the lowest instance id is chosen.

        Returns:
            Claimed on success, Pending when no worker is claimable (carrying
            the capacity decision), ClaimConflict when another claim won the
            chosen worker between the read and the write.

        Raises:
            ValidationError: user_id is empty.
            DependencyFailureError: Store or fleet failed.
        """
        if not user_id or not user_id.strip():
            raise ValidationError("userId is required", details={"field": "user_id"})

        with telemetry.span("machinepool.claim", user_id=user_id):
            now = self._clock()
            candidates = claimable(self._store, now, self.heartbeat_max_age)
            if not candidates:
                decision = self._controller.scale_to_meet_buffer()
                logger.info(
                    "No claimable worker for %s; capacity decision: %s",
                    user_id,
                    decision.to_dict(),
                )
                return Pending(decision=decision, message=pending_message(decision))

            chosen = min(candidates, key=lambda record: record.instance_id)
            expiry = now + self.lease_ttl
            try:
                leased = self._store.try_transition(
                    chosen.instance_id,
                    WorkerStatus.AVAILABLE,
                    lease_fields(user_id, expiry),
                )
            except ConflictError:
                logger.info(
                    "Claim race lost on %s for %s", chosen.instance_id, user_id
                )
                return ClaimConflict(instance_id=chosen.instance_id)

            logger.info(
                "Leased %s to %s until %.0f", leased.instance_id, user_id, expiry
            )
            return Claimed(
                instance_id=leased.instance_id,
                public_ip=leased.public_ip,
                private_ip=leased.private_ip,
                lease_expiry=expiry,
                connection_hint=connection_hint(leased.public_ip, self.worker_port),
                user_id=user_id,
            )

    def release(self, instance_id: str) -> WorkerRecord:
        """
        Return a worker to the available pool.

        Unconditional and idempotent. The caller is not checked against the
        leasing user.

        Raises:
            ValidationError: instance_id is empty.
            WorkerNotFoundError: No record for instance_id.
        """
        if not instance_id:
            raise ValidationError("instanceId is required", details={"field": "instance_id"})
        record = self._store.update(instance_id, release_fields())
        logger.info("Released %s", instance_id)
        return record
