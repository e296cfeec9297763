"""Worker records, fleet sizes and the outcomes returned by claims and scale decisions."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union


class WorkerStatus(str, Enum):
    """Lease status of a worker record."""

    AVAILABLE = "available"
    LEASED = "leased"


@dataclass
class WorkerRecord:
    """
    One registered worker machine.

    Invariant: status is LEASED exactly when user_id and lease_expiry are set.
    Timestamps are epoch seconds.
    """

    instance_id: str
    status: WorkerStatus = WorkerStatus.AVAILABLE
    public_ip: Optional[str] = None
    private_ip: Optional[str] = None
    last_heartbeat: float = 0.0
    lease_expiry: Optional[float] = None
    user_id: Optional[str] = None


# Field sets written by the allocator. Keys are WorkerRecord attribute names.
def lease_fields(user_id: str, lease_expiry: float) -> Dict[str, Any]:
    return {
        "status": WorkerStatus.LEASED,
        "user_id": user_id,
        "lease_expiry": lease_expiry,
    }


def release_fields() -> Dict[str, Any]:
    return {
        "status": WorkerStatus.AVAILABLE,
        "user_id": None,
        "lease_expiry": None,
    }


@dataclass(frozen=True)
class FleetSize:
    """Desired and maximum size reported by fleet control."""

    desired: int
    max_size: int


class ScaleReason(str, Enum):
    """Why a scale-out did not happen."""

    COOLDOWN_ACTIVE = "cooldown_active"
    BUFFER_SATISFIED = "buffer_satisfied"
    AT_MAX_CAPACITY = "at_max_capacity"


@dataclass
class ScaleDecision:
    """Result of one CapacityController.scale_to_meet_buffer() call."""

    scaled: bool
    reason: Optional[ScaleReason] = None
    retry_after: Optional[float] = None
    available: Optional[int] = None
    missing: Optional[int] = None
    desired: Optional[int] = None
    max_size: Optional[int] = None
    desired_before: Optional[int] = None
    desired_after: Optional[int] = None

    @property
    def at_max_capacity(self) -> bool:
        return self.reason == ScaleReason.AT_MAX_CAPACITY

    def to_dict(self) -> Dict[str, Any]:
        """Serialize, dropping fields that do not apply to this decision."""
        data: Dict[str, Any] = {"scaled": self.scaled}
        if self.reason is not None:
            data["reason"] = self.reason.value
        for name in (
            "retry_after",
            "available",
            "missing",
            "desired",
            "max_size",
            "desired_before",
            "desired_after",
        ):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


@dataclass
class Claimed:
    """A worker was leased to the caller."""

    instance_id: str
    public_ip: Optional[str]
    private_ip: Optional[str]
    lease_expiry: float
    connection_hint: str
    user_id: str = ""


@dataclass
class Pending:
    """No claimable worker; the caller should retry once capacity boots."""

    decision: ScaleDecision
    message: str = "No machines available. Scaling up. Retry in a few seconds."


@dataclass
class ClaimConflict:
    """Another claim took the chosen worker first. Retry claim from scratch."""

    instance_id: str
    message: str = "Machine already claimed. Retry."


ClaimOutcome = Union[Claimed, Pending, ClaimConflict]
