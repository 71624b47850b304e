# app/esign/models.py

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db import Base
from app.esign.schemas import SignatureStatus
from app.users.models import AuditMixin


class DocumentSignatureRequest(Base, AuditMixin):
    """
    One single-use, expiring invitation for one party to sign one lease.

    The row is immutable once its status is `signed`; the signer fields below
    stay empty until then.
    """

    __tablename__ = "document_signature_requests"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    lease_id: Mapped[int] = mapped_column(Integer, ForeignKey("leases.id"), index=True)

    token: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    role: Mapped[str] = mapped_column(String(16), comment="tenant or landlord")
    status: Mapped[str] = mapped_column(
        String(16), default=SignatureStatus.SENT.value, comment="sent or signed"
    )
    recipient_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    recipient_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # --- Completion details ---
    signed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    signer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    signer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    signer_ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    signer_user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    signed_pdf_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    audit_log_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    document_hash: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, comment="SHA-256 of the signed PDF"
    )

    lease: Mapped["Lease"] = relationship(back_populates="signature_requests")

    @property
    def is_signed(self) -> bool:
        """Whether this request reached its terminal state"""
        return self.status == SignatureStatus.SIGNED.value

    def to_dict(self):
        """Convert the DocumentSignatureRequest model to a dictionary"""
        return {
            "id": self.id,
            "lease_id": self.lease_id,
            "role": self.role,
            "status": self.status,
            "recipient_name": self.recipient_name,
            "recipient_email": self.recipient_email,
            "expires_at": self.expires_at,
            "signed_at": self.signed_at,
            "signer_name": self.signer_name,
            "signed_pdf_url": self.signed_pdf_url,
            "audit_log_url": self.audit_log_url,
            "document_hash": self.document_hash,
        }
