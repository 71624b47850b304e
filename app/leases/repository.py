# app/leases/repository.py

"""
Data access for leases and their signing state.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.landlords.models import Landlord, Property, Unit
from app.leases.models import Lease
from app.leases.schemas import LeaseStatus, SigningStatus


def _lease_load_options():
    return (
        selectinload(Lease.tenant),
        selectinload(Lease.signature_requests),
        selectinload(Lease.unit)
        .selectinload(Unit.property)
        .selectinload(Property.landlord)
        .selectinload(Landlord.owner),
    )


def _signing_status_filter(signing_status: SigningStatus):
    """SQL condition equivalent to Lease.signing_status"""
    tenant_signed = Lease.tenant_signed_at.isnot(None)
    landlord_signed = Lease.landlord_signed_at.isnot(None)
    tenant_unsigned = Lease.tenant_signed_at.is_(None)
    landlord_unsigned = Lease.landlord_signed_at.is_(None)
    return {
        SigningStatus.UNSIGNED: (tenant_unsigned, landlord_unsigned),
        SigningStatus.AWAITING_LANDLORD: (tenant_signed, landlord_unsigned),
        SigningStatus.AWAITING_TENANT: (tenant_unsigned, landlord_signed),
        SigningStatus.FULLY_EXECUTED: (tenant_signed, landlord_signed),
    }[signing_status]


class LeaseRepository:
    """Repository for Lease reads."""

    def __init__(self, db: Session):
        self.db = db

    def get_lease(self, lease_id: int) -> Optional[Lease]:
        """Lease with tenant, unit, property, landlord and signature requests loaded."""
        stmt = select(Lease).options(*_lease_load_options()).where(Lease.id == lease_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_landlord_leases(
        self, landlord_id: int, signing_status: Optional[SigningStatus] = None
    ) -> List[Lease]:
        """Leases on the landlord's properties, newest first."""
        stmt = (
            select(Lease)
            .join(Lease.unit)
            .join(Unit.property)
            .options(*_lease_load_options())
            .where(Property.landlord_id == landlord_id)
            .order_by(Lease.id.desc())
        )
        if signing_status:
            stmt = stmt.where(*_signing_status_filter(signing_status))
        return list(self.db.execute(stmt).scalars().all())

    def list_awaiting_landlord_signature(self, created_since: datetime) -> List[Lease]:
        """Active leases the tenant signed and the landlord has not, created since a cutoff."""
        stmt = (
            select(Lease)
            .options(*_lease_load_options())
            .where(
                Lease.status == LeaseStatus.ACTIVE.value,
                Lease.created_on >= created_since,
                *_signing_status_filter(SigningStatus.AWAITING_LANDLORD),
            )
            .order_by(Lease.id)
        )
        return list(self.db.execute(stmt).scalars().all())
