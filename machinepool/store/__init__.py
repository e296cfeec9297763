"""
Worker store backends.

    from machinepool.store import InMemoryWorkerStore, WorkerStore

DynamoWorkerStore lives in machinepool.store.dynamodb so boto3 is only
imported when the AWS backend is selected.
"""

from machinepool.store.memory import InMemoryWorkerStore
from machinepool.store.protocol import WorkerStore

__all__ = ["InMemoryWorkerStore", "WorkerStore"]
