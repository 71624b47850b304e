# app/esign/schemas.py

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class SigningRole(str, PyEnum):
    """Party a signature request is addressed to."""
    TENANT = "tenant"
    LANDLORD = "landlord"


class SignatureStatus(str, PyEnum):
    """Signature request states. `signed` is terminal."""
    SENT = "sent"
    SIGNED = "signed"


class CamelModel(BaseModel):
    """Base schema speaking camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SigningSessionResponse(CamelModel):
    """What a signer sees when opening a signing link."""

    lease_id: int
    role: SigningRole
    recipient_name: Optional[str] = None
    recipient_email: Optional[str] = None
    lease_html: str


class SignatureSubmission(CamelModel):
    """
    Signature form payload. Every field is optional here so that missing
    values surface as a 400 from the service rather than a 422.
    """

    signature_data_url: Optional[str] = None
    signer_name: Optional[str] = None
    signer_email: Optional[str] = None
    consent: bool = False

    @field_validator("signature_data_url", "signer_name", "signer_email", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("consent", mode="before")
    @classmethod
    def coerce_consent(cls, value):
        return bool(value)


class SignatureResult(CamelModel):
    """Outcome of a successful signature."""

    signed_pdf_url: str
    audit_log_url: str
    document_hash: str


class SignerMetadata(BaseModel):
    """Everything stamped on the PDF and recorded in the audit log."""

    token: str
    role: SigningRole
    signer_name: str
    signer_email: str
    signed_at: datetime
    ip: str
    user_agent: str
    lease_id: int
    landlord_id: Optional[int] = None

    def audit_record(self) -> dict:
        """Audit log entry, in the key order it is printed"""
        return {
            "token": self.token,
            "role": self.role.value,
            "signer_name": self.signer_name,
            "signer_email": self.signer_email,
            "signed_at": self.signed_at.isoformat(),
            "ip": self.ip,
            "user_agent": self.user_agent,
            "lease_id": self.lease_id,
        }
