"""
Pydantic models for API request/response schemas.
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


# =============================================================================
# Worker Endpoint Schemas
# =============================================================================


class RegisterRequest(BaseModel):
    """Request body for POST /register."""

    instance_id: str = Field(..., description="Cloud instance identifier")
    public_ip: Optional[str] = Field(None, description="Public IPv4 address, if any")
    private_ip: Optional[str] = Field(None, description="Private IPv4 address")


class RegisterResponse(BaseModel):
    """Response body for POST /register."""

    ok: bool = True
    message: str = "registered"
    instance_id: str


class HeartbeatRequest(BaseModel):
    """Request body for POST /heartbeat."""

    instance_id: str = Field(..., description="Cloud instance identifier")


class OkResponse(BaseModel):
    """Bare acknowledgement."""

    ok: bool = True


# =============================================================================
# Lease Endpoint Schemas
# =============================================================================


class ClaimRequest(BaseModel):
    """Request body for POST /claim."""

    user_id: str = Field(..., description="User requesting a machine")


class ClaimResponse(BaseModel):
    """Response body for a successful POST /claim."""

    ok: bool = True
    instance_id: str = Field(..., description="Leased worker")
    public_ip: Optional[str] = None
    private_ip: Optional[str] = None
    lease_expiry: float = Field(..., description="Lease end, epoch seconds")
    connection_hint: str = Field(..., description="How to reach the worker")


class PendingResponse(BaseModel):
    """Response body for POST /claim when no worker is claimable (HTTP 202)."""

    ok: bool = False
    message: str
    scale_info: Dict[str, Any] = Field(..., description="Capacity controller decision")


class ReleaseRequest(BaseModel):
    """Request body for POST /release."""

    instance_id: str = Field(..., description="Worker to release")


class ReleaseResponse(BaseModel):
    """Response body for POST /release."""

    ok: bool = True
    message: str = "released"
    instance_id: str


# =============================================================================
# Health and Error Schemas
# =============================================================================


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str = Field(..., description="Health status")
    service: str = Field(..., description="Service name")


class ErrorDetail(BaseModel):
    """Error details."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    request_id: Optional[str] = Field(None, description="Request ID for tracking")
    details: Dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: ErrorDetail
