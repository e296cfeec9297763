"""
User-facing lease endpoints.

POST /claim - Lease a worker (200), or trigger scale-out and ask to retry (202)
POST /release - Return a worker to the pool
"""
from typing import Union

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from machinepool.exceptions import CapacityExhaustedError, ConflictError
from machinepool.models import ClaimConflict, Pending, WorkerStatus
from machinepool.pool import get_pool
from machinepool.server.schemas import (
    ClaimRequest,
    ClaimResponse,
    PendingResponse,
    ReleaseRequest,
    ReleaseResponse,
)


router = APIRouter(tags=["leases"])


@router.post(
    "/claim",
    response_model=ClaimResponse,
    responses={202: {"model": PendingResponse}},
)
def claim(request_body: ClaimRequest) -> Union[ClaimResponse, JSONResponse]:
    """
    Claim a machine for a user.

    - 200: a worker was leased; the body has its addresses and lease expiry.
    - 202: nothing claimable; a scale-out may have been started. Retry later.
    - 409: another claim took the chosen worker. Retry immediately.
    - 503: nothing claimable and the fleet is at maximum capacity.
    """
    outcome = get_pool().claim_worker(request_body.user_id)

    if isinstance(outcome, ClaimConflict):
        raise ConflictError(
            outcome.instance_id,
            WorkerStatus.AVAILABLE.value,
            message=outcome.message,
        )

    if isinstance(outcome, Pending):
        decision = outcome.decision
        if decision.at_max_capacity:
            raise CapacityExhaustedError(
                outcome.message,
                desired=decision.desired,
                max_size=decision.max_size,
            )
        return JSONResponse(
            status_code=202,
            content=PendingResponse(
                message=outcome.message,
                scale_info=decision.to_dict(),
            ).model_dump(),
        )

    return ClaimResponse(
        instance_id=outcome.instance_id,
        public_ip=outcome.public_ip,
        private_ip=outcome.private_ip,
        lease_expiry=outcome.lease_expiry,
        connection_hint=outcome.connection_hint,
    )


@router.post("/release", response_model=ReleaseResponse)
def release(request_body: ReleaseRequest) -> ReleaseResponse:
    """Release a worker. Idempotent; does not check who holds the lease."""
    get_pool().release_worker(request_body.instance_id)
    return ReleaseResponse(instance_id=request_body.instance_id)
