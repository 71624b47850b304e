# app/leases/schemas.py

from datetime import datetime
from enum import Enum as PyEnum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class LeaseStatus(str, PyEnum):
    """Lease status enum."""
    PENDING = "pending"
    ACTIVE = "active"
    ENDED = "ended"


class SigningStatus(str, PyEnum):
    """Two-party signing progress, derived from signature requests."""
    UNSIGNED = "unsigned"
    AWAITING_LANDLORD = "awaiting_landlord"
    AWAITING_TENANT = "awaiting_tenant"
    FULLY_EXECUTED = "fully_executed"


class LeaseBaseModel(BaseModel):
    """camelCase wire format shared by lease schemas."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class SignSessionRequest(LeaseBaseModel):
    """Body of the sign-session endpoint."""

    role: Optional[str] = None


class SignSessionResponse(LeaseBaseModel):
    """A freshly issued signing link."""

    token: str
    url: str
    expires_at: datetime
    lease_html: str
    signature_request_id: int


class SignatureRequestSummary(LeaseBaseModel):
    """One signature request as shown on the lease detail view."""

    id: int
    role: str
    status: str
    recipient_name: Optional[str] = None
    recipient_email: Optional[str] = None
    expires_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None
    signer_name: Optional[str] = None
    signed_pdf_url: Optional[str] = None
    audit_log_url: Optional[str] = None
    document_hash: Optional[str] = None


class LeaseSigningSummary(LeaseBaseModel):
    """Lease row of the landlord lease list."""

    id: int
    status: str
    tenant_name: Optional[str] = None
    property_label: str
    tenant_signed_at: Optional[datetime] = None
    landlord_signed_at: Optional[datetime] = None
    signing_status: SigningStatus


class LeaseSigningDetail(LeaseSigningSummary):
    """Lease detail view with its signature requests."""

    signature_requests: List[SignatureRequestSummary] = []


class NotifySignResponse(LeaseBaseModel):
    """Response of the notify-sign endpoint."""

    success: bool
