"""
HTTP status mapping for pool errors.
"""

from typing import Dict, Type

from machinepool.exceptions import (
    CapacityExhaustedError,
    ConflictError,
    DependencyFailureError,
    PoolError,
    ValidationError,
    WorkerNotFoundError,
)


STATUS_CODES: Dict[Type[PoolError], int] = {
    ValidationError: 400,
    WorkerNotFoundError: 404,
    ConflictError: 409,
    DependencyFailureError: 502,
    CapacityExhaustedError: 503,
}


def status_code_for(exc: PoolError) -> int:
    """Most specific mapped status for exc; 500 for anything unmapped."""
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500
