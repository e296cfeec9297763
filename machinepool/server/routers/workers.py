"""
Worker-facing endpoints, called by the agent on each machine.

POST /register - Register (or re-register) a worker as available
POST /heartbeat - Refresh a worker's liveness
"""
from fastapi import APIRouter

from machinepool.pool import get_pool
from machinepool.server.schemas import (
    HeartbeatRequest,
    OkResponse,
    RegisterRequest,
    RegisterResponse,
)


router = APIRouter(tags=["workers"])


@router.post("/register", response_model=RegisterResponse)
def register(request_body: RegisterRequest) -> RegisterResponse:
    """
    Register a worker.

    Idempotent: re-registering overwrites the record as available with a
    fresh heartbeat and no lease.
    """
    get_pool().register_worker(
        request_body.instance_id,
        public_ip=request_body.public_ip,
        private_ip=request_body.private_ip,
    )
    return RegisterResponse(instance_id=request_body.instance_id)


@router.post("/heartbeat", response_model=OkResponse)
def heartbeat(request_body: HeartbeatRequest) -> OkResponse:
    """Refresh liveness. 404 if the worker never registered."""
    get_pool().send_heartbeat(request_body.instance_id)
    return OkResponse()
