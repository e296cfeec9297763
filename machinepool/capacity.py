"""
Demand-driven fleet sizing.

The controller keeps a standing buffer of claimable workers. When a claim
misses, it computes how many workers the buffer is short and grows the fleet
by that deficit in one call, capped at the fleet maximum. A burst of
simultaneous misses therefore yields one right-sized scale-out instead of
one machine per miss.

Scale-outs are rate limited by a cooldown: at most one fleet mutation per
window, no matter how many claims miss concurrently.

Usage:
    controller = CapacityController(store, fleet, target_available=2)
    decision = controller.scale_to_meet_buffer()
    if not decision.scaled:
        print(decision.reason)
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from machinepool import telemetry
from machinepool.fleet.protocol import FleetControl
from machinepool.health import claimable
from machinepool.models import ScaleDecision, ScaleReason
from machinepool.store.protocol import WorkerStore

logger = logging.getLogger(__name__)


class CapacityController:
    """
    Cooldown-gated, buffer-targeting scale-out policy for one fleet.

    last_scale_out_at is the only mutable state; it is held per instance and
    guarded by a lock. Losing it on restart allows at most one extra
    immediate scale-out.
    """

    def __init__(
        self,
        store: WorkerStore,
        fleet: FleetControl,
        *,
        target_available: int = 2,
        cooldown_seconds: float = 30.0,
        heartbeat_max_age: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if target_available < 0:
            raise ValueError("target_available must be >= 0")
        if cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must be >= 0")
        self._store = store
        self._fleet = fleet
        self.target_available = target_available
        self.cooldown_seconds = cooldown_seconds
        self.heartbeat_max_age = heartbeat_max_age
        self._clock = clock
        self._last_scale_out_at: Optional[float] = None
        # Held for the whole decision so concurrent misses see each other's scale-out.
        self._lock = threading.Lock()

    @property
    def last_scale_out_at(self) -> Optional[float]:
        with self._lock:
            return self._last_scale_out_at

    def _cooldown_remaining(self, now: float) -> float:
        """Seconds until the next scale-out is allowed. Caller holds the lock."""
        if self._last_scale_out_at is None:
            return 0.0
        return max(0.0, self._last_scale_out_at + self.cooldown_seconds - now)

    def scale_to_meet_buffer(self) -> ScaleDecision:
        """
        Grow the fleet by the buffer deficit if allowed.

        Returns:
            ScaleDecision with scaled=True and the before/after desired sizes,
            or scaled=False with the reason (cooldown_active, buffer_satisfied,
            at_max_capacity).

        Raises:
            FleetNotFoundError: The configured fleet does not exist.
            DependencyFailureError: Store or fleet API failed.
        """
        with telemetry.span("machinepool.scale_to_meet_buffer", fleet=self._fleet.name):
            with self._lock:
                return self._decide()

    def _decide(self) -> ScaleDecision:
        now = self._clock()

        retry_after = self._cooldown_remaining(now)
        if retry_after > 0:
            logger.debug(
                "Scale-out skipped for %s: cooldown, retry in %.1fs",
                self._fleet.name,
                retry_after,
            )
            return ScaleDecision(
                scaled=False,
                reason=ScaleReason.COOLDOWN_ACTIVE,
                retry_after=retry_after,
            )

        available = len(claimable(self._store, now, self.heartbeat_max_age))
        missing = self.target_available - available
        if missing <= 0:
            return ScaleDecision(
                scaled=False,
                reason=ScaleReason.BUFFER_SATISFIED,
                available=available,
                missing=0,
            )

        size = self._fleet.describe()
        desired_after = min(size.desired + missing, size.max_size)
        if desired_after <= size.desired:
            logger.warning(
                "Fleet %s at max capacity (desired=%d, max=%d); %d workers short of buffer",
                self._fleet.name,
                size.desired,
                size.max_size,
                missing,
            )
            return ScaleDecision(
                scaled=False,
                reason=ScaleReason.AT_MAX_CAPACITY,
                available=available,
                missing=missing,
                desired=size.desired,
                max_size=size.max_size,
            )

        self._fleet.set_desired_size(desired_after)
        self._last_scale_out_at = now
        logger.info(
            "Scaled fleet %s from %d to %d (available=%d, target=%d)",
            self._fleet.name,
            size.desired,
            desired_after,
            available,
            self.target_available,
        )
        return ScaleDecision(
            scaled=True,
            available=available,
            missing=missing,
            desired_before=size.desired,
            desired_after=desired_after,
            max_size=size.max_size,
        )
