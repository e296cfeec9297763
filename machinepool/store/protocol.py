from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol

from machinepool.models import WorkerRecord, WorkerStatus


class WorkerStore(Protocol):
    """
    Durable keyed storage of worker records.

    try_transition() is the only concurrency control in the system: every
    mutation that depends on an earlier read must go through it so the
    precondition is re-checked at write time.
    """

    def register(
        self,
        instance_id: str,
        public_ip: Optional[str] = None,
        private_ip: Optional[str] = None,
    ) -> WorkerRecord:
        """Create or overwrite a record as available with a fresh heartbeat."""
        ...

    def heartbeat(self, instance_id: str) -> None:
        """Refresh last_heartbeat. Raises WorkerNotFoundError for unknown ids."""
        ...

    def get(self, instance_id: str) -> WorkerRecord:
        ...

    def list_by_status(self, status: WorkerStatus) -> List[WorkerRecord]:
        """Snapshot of records in the given status. May be stale."""
        ...

    def try_transition(
        self,
        instance_id: str,
        expected_status: WorkerStatus,
        fields: Mapping[str, Any],
    ) -> WorkerRecord:
        """Apply fields iff status == expected_status, else raise ConflictError."""
        ...

    def update(self, instance_id: str, fields: Mapping[str, Any]) -> WorkerRecord:
        """Unconditionally apply fields to an existing record."""
        ...


# Attributes the core may write through try_transition()/update().
MUTABLE_FIELDS = frozenset({"status", "user_id", "lease_expiry"})


def check_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Reject writes to identity, address or heartbeat attributes."""
    unknown = set(fields) - MUTABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not writable by transitions: {sorted(unknown)}")
    return dict(fields)
