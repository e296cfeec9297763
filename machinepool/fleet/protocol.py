from __future__ import annotations

from typing import Protocol

from machinepool.models import FleetSize


class FleetControl(Protocol):
    """
    Externally managed set of worker machines.

    set_desired_size() is fire-and-forget: machines boot some time after the
    call returns and show up through registration, not through this interface.
    """

    name: str

    def describe(self) -> FleetSize:
        """Current desired and maximum size. Raises FleetNotFoundError."""
        ...

    def set_desired_size(self, size: int) -> None:
        ...
