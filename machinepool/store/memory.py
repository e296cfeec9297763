"""
In-memory worker store.

Thread-safe: one lock guards the record map, so try_transition() is a true
compare-then-set. Records handed out are copies; callers hold snapshots and
must not expect them to track later writes.
"""
from __future__ import annotations

import dataclasses
import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from machinepool.exceptions import ConflictError, WorkerNotFoundError
from machinepool.models import WorkerRecord, WorkerStatus
from machinepool.store.protocol import check_fields


class InMemoryWorkerStore:
    """Worker store for single-process deployments and tests."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._records: Dict[str, WorkerRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def register(
        self,
        instance_id: str,
        public_ip: Optional[str] = None,
        private_ip: Optional[str] = None,
    ) -> WorkerRecord:
        record = WorkerRecord(
            instance_id=instance_id,
            status=WorkerStatus.AVAILABLE,
            public_ip=public_ip or None,
            private_ip=private_ip or None,
            last_heartbeat=self._clock(),
        )
        with self._lock:
            self._records[instance_id] = record
            return dataclasses.replace(record)

    def heartbeat(self, instance_id: str) -> None:
        with self._lock:
            record = self._records.get(instance_id)
            if record is None:
                raise WorkerNotFoundError(instance_id)
            # Out-of-order beats must not move the heartbeat backwards.
            record.last_heartbeat = max(record.last_heartbeat, self._clock())

    def get(self, instance_id: str) -> WorkerRecord:
        with self._lock:
            record = self._records.get(instance_id)
            if record is None:
                raise WorkerNotFoundError(instance_id)
            return dataclasses.replace(record)

    def list_by_status(self, status: WorkerStatus) -> List[WorkerRecord]:
        with self._lock:
            return [
                dataclasses.replace(record)
                for record in self._records.values()
                if record.status == status
            ]

    def try_transition(
        self,
        instance_id: str,
        expected_status: WorkerStatus,
        fields: Mapping[str, Any],
    ) -> WorkerRecord:
        changes = check_fields(fields)
        with self._lock:
            record = self._records.get(instance_id)
            if record is None or record.status != expected_status:
                raise ConflictError(instance_id, expected_status.value)
            updated = dataclasses.replace(record, **changes)
            self._records[instance_id] = updated
            return dataclasses.replace(updated)

    def update(self, instance_id: str, fields: Mapping[str, Any]) -> WorkerRecord:
        changes = check_fields(fields)
        with self._lock:
            record = self._records.get(instance_id)
            if record is None:
                raise WorkerNotFoundError(instance_id)
            updated = dataclasses.replace(record, **changes)
            self._records[instance_id] = updated
            return dataclasses.replace(updated)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
