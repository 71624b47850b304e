# app/leases/models.py

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    func,
    select,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db import Base
from app.esign.models import DocumentSignatureRequest
from app.esign.schemas import SignatureStatus, SigningRole
from app.landlords.models import Landlord, Unit
from app.leases.schemas import LeaseStatus, SigningStatus
from app.users.models import AuditMixin, User


def _signed_at_subquery(lease_cls, role: SigningRole):
    """Correlated scalar subquery: latest signature time for a role."""
    return (
        select(func.max(DocumentSignatureRequest.signed_at))
        .where(
            DocumentSignatureRequest.lease_id == lease_cls.id,
            DocumentSignatureRequest.role == role.value,
            DocumentSignatureRequest.status == SignatureStatus.SIGNED.value,
        )
        .correlate_except(DocumentSignatureRequest)
        .scalar_subquery()
    )


class Lease(Base, AuditMixin):
    """
    Lease model

    Signature timestamps are not stored here: the signed
    DocumentSignatureRequest rows are the record, and `tenant_signed_at` /
    `landlord_signed_at` are derived from them, both in Python and in SQL.
    """

    __tablename__ = "leases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"))
    tenant_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[Optional[date]] = mapped_column(
        Date, nullable=True, comment="Empty for month-to-month leases"
    )
    rent_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    billing_day_of_month: Mapped[int] = mapped_column(Integer, default=1)
    status: Mapped[str] = mapped_column(
        String(32), default=LeaseStatus.PENDING.value, comment="pending, active, ended"
    )

    # Relationships
    unit: Mapped[Unit] = relationship()
    tenant: Mapped[Optional[User]] = relationship(foreign_keys=[tenant_id])
    signature_requests: Mapped[List[DocumentSignatureRequest]] = relationship(
        back_populates="lease", order_by=DocumentSignatureRequest.id
    )

    @property
    def landlord(self) -> Optional[Landlord]:
        """Landlord owning the leased unit"""
        if self.unit and self.unit.property:
            return self.unit.property.landlord
        return None

    def _latest_signed_at(self, role: SigningRole) -> Optional[datetime]:
        signed = [
            req.signed_at
            for req in self.signature_requests
            if req.role == role.value and req.is_signed and req.signed_at
        ]
        return max(signed) if signed else None

    @hybrid_property
    def tenant_signed_at(self) -> Optional[datetime]:
        return self._latest_signed_at(SigningRole.TENANT)

    @tenant_signed_at.expression
    def tenant_signed_at(cls):
        return _signed_at_subquery(cls, SigningRole.TENANT)

    @hybrid_property
    def landlord_signed_at(self) -> Optional[datetime]:
        return self._latest_signed_at(SigningRole.LANDLORD)

    @landlord_signed_at.expression
    def landlord_signed_at(cls):
        return _signed_at_subquery(cls, SigningRole.LANDLORD)

    @property
    def signing_status(self) -> SigningStatus:
        """Where the two-party signing stands"""
        tenant_signed = self.tenant_signed_at is not None
        landlord_signed = self.landlord_signed_at is not None
        if tenant_signed and landlord_signed:
            return SigningStatus.FULLY_EXECUTED
        if tenant_signed:
            return SigningStatus.AWAITING_LANDLORD
        if landlord_signed:
            return SigningStatus.AWAITING_TENANT
        return SigningStatus.UNSIGNED

    @property
    def is_fully_executed(self) -> bool:
        """Both a tenant and a landlord request are signed"""
        return self.signing_status == SigningStatus.FULLY_EXECUTED

    def to_dict(self):
        """Convert the Lease model to a dictionary"""
        return {
            "id": self.id,
            "unit_id": self.unit_id,
            "tenant_id": self.tenant_id,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "rent_amount": self.rent_amount,
            "billing_day_of_month": self.billing_day_of_month,
            "status": self.status,
            "tenant_signed_at": self.tenant_signed_at,
            "landlord_signed_at": self.landlord_signed_at,
            "signing_status": self.signing_status.value,
        }
