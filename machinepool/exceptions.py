"""
Typed exceptions for machinepool.

Provides structured error handling with:
- PoolError: Base exception for all machinepool errors
- ValidationError: Missing or malformed input, rejected before side effects
- WorkerNotFoundError: Operation on an instance id with no record
- ConflictError: Conditional write lost the race to another writer
- CapacityExhaustedError: Fleet already at its maximum size
- DependencyFailureError: Worker store or fleet API failed
- ConfigurationError: Invalid settings

All exceptions include structured attributes for programmatic handling.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class PoolError(Exception):
    """Base exception for all machinepool errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context as key-value pairs
    """

    default_code = "pool_error"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging or API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(PoolError):
    """Required input is missing or empty.

    Raised before any store or fleet call is made, so a rejected
    request never leaves partial state behind.

    Examples:
        ValidationError("userId is required", details={"field": "user_id"})
    """

    default_code = "validation_error"


class WorkerNotFoundError(PoolError):
    """No worker record exists for the given instance id.

    Heartbeats and releases against unknown ids raise this instead of
    fabricating a record.
    """

    default_code = "worker_not_found"

    def __init__(
        self,
        instance_id: str,
        *,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        details["instance_id"] = instance_id
        self.instance_id = instance_id
        super().__init__(message or f"Worker not found: {instance_id}", details=details)


class ConflictError(PoolError):
    """A compare-then-set precondition did not hold at write time.

    Expected under concurrent claims. Safe to retry, but the caller must
    restart candidate selection rather than retry the same instance.

    Attributes:
        instance_id: The record the write targeted
        expected_status: Status the writer required
    """

    default_code = "lease_conflict"

    def __init__(
        self,
        instance_id: str,
        expected_status: Optional[str] = None,
        *,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        details["instance_id"] = instance_id
        if expected_status:
            details["expected_status"] = expected_status
        self.instance_id = instance_id
        self.expected_status = expected_status
        super().__init__(
            message or f"Worker {instance_id} is no longer {expected_status or 'in the expected state'}",
            details=details,
        )


class CapacityExhaustedError(PoolError):
    """The fleet is at its maximum size and cannot grow.

    A persistent condition that needs operator action (raise the maximum
    or free leased workers). Never retried internally.

    Attributes:
        desired: Current desired fleet size
        max_size: Configured fleet maximum
    """

    default_code = "capacity_exhausted"

    def __init__(
        self,
        message: str,
        *,
        desired: Optional[int] = None,
        max_size: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        if desired is not None:
            details["desired"] = desired
        if max_size is not None:
            details["max_size"] = max_size
        self.desired = desired
        self.max_size = max_size
        super().__init__(message, details=details)


class DependencyFailureError(PoolError):
    """The worker store or the fleet API failed.

    The whole operation fails; since every mutation is a single write,
    nothing is left half-applied.

    Attributes:
        dependency: Which collaborator failed ("store", "fleet")
    """

    default_code = "dependency_failure"

    def __init__(
        self,
        message: str,
        *,
        dependency: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        if dependency:
            details["dependency"] = dependency
        self.dependency = dependency
        super().__init__(message, code=code, details=details)


class FleetNotFoundError(DependencyFailureError):
    """The configured fleet does not exist. A configuration error; fail fast."""

    default_code = "fleet_not_found"

    def __init__(self, fleet_name: str) -> None:
        self.fleet_name = fleet_name
        super().__init__(
            f"Fleet not found: {fleet_name}",
            dependency="fleet",
            details={"fleet_name": fleet_name},
        )


class ConfigurationError(PoolError):
    """Invalid configuration value.

    Examples:
        ConfigurationError("Invalid integer", details={"MACHINEPOOL_PORT": "abc"})
    """

    default_code = "configuration_error"
