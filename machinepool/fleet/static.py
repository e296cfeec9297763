"""In-process fleet for local runs and tests: no machines are actually launched."""
from __future__ import annotations

import logging
import threading
from typing import List

from machinepool.exceptions import DependencyFailureError
from machinepool.models import FleetSize

logger = logging.getLogger(__name__)


class StaticFleet:
    """Fleet whose size lives in memory. Records every resize request."""

    def __init__(self, name: str = "local", desired: int = 0, max_size: int = 10) -> None:
        if desired < 0 or max_size < 0:
            raise ValueError("Fleet sizes must be non-negative")
        self.name = name
        self._desired = desired
        self._max_size = max_size
        self._lock = threading.Lock()
        self.resize_calls: List[int] = []

    def describe(self) -> FleetSize:
        with self._lock:
            return FleetSize(desired=self._desired, max_size=self._max_size)

    def set_desired_size(self, size: int) -> None:
        with self._lock:
            if size > self._max_size:
                raise DependencyFailureError(
                    f"Desired size {size} exceeds fleet maximum {self._max_size}",
                    dependency="fleet",
                    details={"fleet_name": self.name, "size": size},
                )
            self._desired = size
            self.resize_calls.append(size)
        logger.info("Fleet %s desired size set to %d", self.name, size)
