# app/esign/repository.py

"""
Data access for signature requests and the leases they belong to.
Nothing here commits; the request-scoped session owns the transaction.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.esign.models import DocumentSignatureRequest
from app.esign.schemas import SignatureStatus, SigningRole
from app.landlords.models import Landlord, Property, Unit
from app.leases.models import Lease
from app.utils.logger import get_logger

logger = get_logger(__name__)


class SignatureRequestRepository:
    """Repository for DocumentSignatureRequest rows."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_token(self, token: str) -> Optional[DocumentSignatureRequest]:
        """Signature request for a token."""
        stmt = select(DocumentSignatureRequest).where(DocumentSignatureRequest.token == token)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_lease(self, lease_id: int) -> Optional[Lease]:
        """Lease with everything needed to render and address it."""
        stmt = (
            select(Lease)
            .options(
                selectinload(Lease.tenant),
                selectinload(Lease.signature_requests),
                selectinload(Lease.unit)
                .selectinload(Unit.property)
                .selectinload(Property.landlord)
                .selectinload(Landlord.owner),
            )
            .where(Lease.id == lease_id)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_pending_request(self, lease_id: int, role: SigningRole) -> Optional[DocumentSignatureRequest]:
        """Unsigned request for a lease and role, if one exists."""
        stmt = (
            select(DocumentSignatureRequest)
            .where(
                DocumentSignatureRequest.lease_id == lease_id,
                DocumentSignatureRequest.role == role.value,
                DocumentSignatureRequest.status == SignatureStatus.SENT.value,
            )
            .order_by(DocumentSignatureRequest.id.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def create(self, request: DocumentSignatureRequest) -> DocumentSignatureRequest:
        """Add a new signature request."""
        self.db.add(request)
        self.db.flush()
        self.db.refresh(request)
        return request

    def mark_signed(
        self,
        token: str,
        *,
        signed_at: datetime,
        signer_name: str,
        signer_email: str,
        signer_ip: str,
        signer_user_agent: str,
        signed_pdf_url: str,
        audit_log_url: str,
        document_hash: str,
    ) -> int:
        """
        Move a request from `sent` to `signed`.
        Returns the number of rows updated; 0 means it was no longer `sent`.
        """
        q = self.db.query(DocumentSignatureRequest).filter(
            DocumentSignatureRequest.token == token,
            DocumentSignatureRequest.status == SignatureStatus.SENT.value,
        )
        updated = q.update(
            {
                DocumentSignatureRequest.status: SignatureStatus.SIGNED.value,
                DocumentSignatureRequest.signed_at: signed_at,
                DocumentSignatureRequest.signer_name: signer_name,
                DocumentSignatureRequest.signer_email: signer_email,
                DocumentSignatureRequest.signer_ip: signer_ip,
                DocumentSignatureRequest.signer_user_agent: signer_user_agent,
                DocumentSignatureRequest.signed_pdf_url: signed_pdf_url,
                DocumentSignatureRequest.audit_log_url: audit_log_url,
                DocumentSignatureRequest.document_hash: document_hash,
            },
            synchronize_session=False,
        )
        return updated
