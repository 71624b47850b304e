# app/esign/services.py

import asyncio
from datetime import date
from typing import Any, Optional, Tuple

from fastapi import Depends
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.core.dependencies import (
    get_email_service,
    get_event_sink,
    get_pdf_renderer,
    get_stamper,
)
from app.esign.exceptions import (
    SignatureAlreadyCompletedException,
    SignatureRequestExpiredException,
    SignatureRequestNotFoundException,
    SigningDownstreamException,
    SigningValidationException,
)
from app.esign.models import DocumentSignatureRequest
from app.esign.repository import SignatureRequestRepository
from app.esign.schemas import (
    SignatureResult,
    SignatureStatus,
    SignatureSubmission,
    SignerMetadata,
    SigningRole,
    SigningSessionResponse,
)
from app.esign.utils import landlord_display_name, render_lease_html, tenant_display_name
from app.leases.models import Lease
from app.utils.email_service import EmailService
from app.utils.event_sink import EventSink
from app.utils.general import expiry_from_now, generate_signing_token, is_expired, utc_now
from app.utils.logger import get_logger
from app.utils.pdf_utils import PdfRenderer, SignatureStamper, StampingError, decode_data_url

logger = get_logger(__name__)

NOTIFICATION_TEMPLATE = "notification.html"
LANDLORD_SIGN_SUBJECT = "Lease ready for your signature"


def get_signature_request_repository(db: Session = Depends(get_db)) -> SignatureRequestRepository:
    """Get signature request repository"""
    return SignatureRequestRepository(db)


def signing_url(token: str) -> str:
    """Public link a signer opens"""
    return f"{settings.signing_base_url}/sign/{token}"


class SigningService:
    """
    Token-gated signing sessions and the `sent -> signed` transition,
    including the hand-off from tenant to landlord.
    """

    def __init__(
        self,
        repo: SignatureRequestRepository = Depends(get_signature_request_repository),
        renderer: PdfRenderer = Depends(get_pdf_renderer),
        stamper: SignatureStamper = Depends(get_stamper),
        email_service: EmailService = Depends(get_email_service),
        events: EventSink = Depends(get_event_sink),
    ):
        self.repo = repo
        self.db = repo.db
        self.renderer = renderer
        self.stamper = stamper
        self.email_service = email_service
        self.events = events

    def _load_open_request(self, token: str) -> DocumentSignatureRequest:
        request = self.repo.get_by_token(token)
        if not request:
            raise SignatureRequestNotFoundException()
        if is_expired(request.expires_at):
            raise SignatureRequestExpiredException()
        return request

    def _load_lease(self, request: DocumentSignatureRequest) -> Lease:
        lease = self.repo.get_lease(request.lease_id)
        if not lease:
            raise SignatureRequestNotFoundException("Lease not found", lease_id=request.lease_id)
        return lease

    @staticmethod
    def validate_submission(payload: Any) -> SignatureSubmission:
        """
        Parse a raw signature payload.

        Raises:
            SigningValidationException: When a field is missing or consent is not given
        """
        if not isinstance(payload, dict):
            payload = {}
        try:
            submission = SignatureSubmission.model_validate(payload)
        except ValidationError as e:
            raise SigningValidationException("Missing signature, name, email, or consent") from e

        if not (
            submission.signature_data_url
            and submission.signer_name
            and submission.signer_email
            and submission.consent
        ):
            raise SigningValidationException("Missing signature, name, email, or consent")
        return submission

    async def get_session(self, token: str, today: Optional[date] = None) -> SigningSessionResponse:
        """Lease document and recipient details behind a signing link."""
        await self.events.emit("esign.get_session", "Signing session requested", {"token": token[:8]})

        request = self._load_open_request(token)
        lease = self._load_lease(request)

        return SigningSessionResponse(
            lease_id=lease.id,
            role=SigningRole(request.role),
            recipient_name=request.recipient_name,
            recipient_email=request.recipient_email,
            lease_html=render_lease_html(lease, today),
        )

    async def submit_signature(
        self,
        token: str,
        payload: Any,
        *,
        ip: str,
        user_agent: str,
    ) -> SignatureResult:
        """
        Sign a lease through a token.

        Nothing is written until the signed PDF and its audit log are stored.
        The transition itself only applies while the request is still `sent`,
        so of two concurrent submissions exactly one succeeds.
        """
        await self.events.emit("esign.submit", "Signature submitted", {"token": token[:8], "ip": ip})

        submission = self.validate_submission(payload)

        request = self._load_open_request(token)
        if request.status == SignatureStatus.SIGNED.value:
            raise SignatureAlreadyCompletedException()
        lease = self._load_lease(request)

        try:
            signature_image = decode_data_url(submission.signature_data_url)
        except ValueError as e:
            raise SigningValidationException(str(e), field="signatureDataUrl") from e

        landlord = lease.landlord
        signer = SignerMetadata(
            token=token,
            role=SigningRole(request.role),
            signer_name=submission.signer_name,
            signer_email=submission.signer_email,
            signed_at=utc_now(),
            ip=ip,
            user_agent=user_agent,
            lease_id=lease.id,
            landlord_id=landlord.id if landlord else None,
        )

        try:
            lease_html = render_lease_html(lease, signer.signed_at.date())
            base_pdf = await asyncio.to_thread(self.renderer.render, lease_html)
            stamped = await asyncio.to_thread(self.stamper.stamp, base_pdf, signature_image, signer)
        except StampingError as e:
            await self.events.emit("esign.stamp", "Stamping failed", {"lease_id": lease.id, "error": str(e)})
            raise SigningDownstreamException(str(e) or "Failed to process signature. Please try again.") from e
        except Exception as e:
            logger.error("Failed to render lease PDF", lease_id=lease.id, error_message=str(e), exc_info=True)
            await self.events.emit("esign.stamp", "Rendering failed", {"lease_id": lease.id, "error": str(e)})
            raise SigningDownstreamException("Failed to process signature. Please try again.") from e

        await self.events.emit(
            "esign.stamp", "Signed document stored",
            {"lease_id": lease.id, "document_hash": stamped.document_hash},
        )

        updated = self.repo.mark_signed(
            token,
            signed_at=signer.signed_at,
            signer_name=signer.signer_name,
            signer_email=signer.signer_email,
            signer_ip=ip,
            signer_user_agent=user_agent,
            signed_pdf_url=stamped.signed_pdf_url,
            audit_log_url=stamped.audit_log_url,
            document_hash=stamped.document_hash,
        )
        if updated == 0:
            self.db.rollback()
            logger.warning("Concurrent signature rejected", lease_id=lease.id, role=request.role)
            raise SignatureAlreadyCompletedException()

        handoff = None
        if signer.role == SigningRole.TENANT:
            self.db.expire(lease)
            handoff = self._create_landlord_request(lease)

        self.db.commit()
        logger.info("Lease signed", lease_id=lease.id, role=signer.role.value)

        if handoff:
            await self._notify_landlord(lease, handoff)

        return SignatureResult(
            signed_pdf_url=stamped.signed_pdf_url,
            audit_log_url=stamped.audit_log_url,
            document_hash=stamped.document_hash,
        )

    def _create_landlord_request(self, lease: Lease) -> Optional[DocumentSignatureRequest]:
        """
        Issue the landlord's signing link once the tenant has signed, unless
        the landlord already signed or still holds an unused link.
        """
        if lease.landlord_signed_at is not None:
            return None
        if self.repo.get_pending_request(lease.id, SigningRole.LANDLORD):
            return None

        landlord = lease.landlord
        owner_email = landlord.owner.email if landlord and landlord.owner else None
        if not owner_email:
            logger.warning("Landlord has no owner email; skipping hand-off", lease_id=lease.id)
            return None

        request, _ = issue_signature_request(
            self.repo, lease, SigningRole.LANDLORD, landlord_display_name(lease), owner_email
        )
        return request

    async def _notify_landlord(self, lease: Lease, request: DocumentSignatureRequest) -> None:
        action_url = signing_url(request.token)
        await self.events.emit("esign.handoff", "Landlord signing link issued", {"lease_id": lease.id})
        try:
            await self.email_service.send(
                to=request.recipient_email,
                subject=LANDLORD_SIGN_SUBJECT,
                template_name=NOTIFICATION_TEMPLATE,
                context={
                    "recipient_name": request.recipient_name,
                    "title": LANDLORD_SIGN_SUBJECT,
                    "message": f"{tenant_display_name(lease)} has signed. Please sign to complete.",
                    "action_url": action_url,
                    "action_label": "Review and sign",
                },
                landlord=lease.landlord,
            )
        except Exception as e:
            logger.error("Failed to email landlord signing link", lease_id=lease.id, error_message=str(e))


def issue_signature_request(
    repo: SignatureRequestRepository,
    lease: Lease,
    role: SigningRole,
    recipient_name: Optional[str],
    recipient_email: Optional[str],
) -> Tuple[DocumentSignatureRequest, str]:
    """Create a `sent` request with a fresh token; returns it with its link."""
    request = repo.create(
        DocumentSignatureRequest(
            lease_id=lease.id,
            token=generate_signing_token(),
            role=role.value,
            status=SignatureStatus.SENT.value,
            recipient_name=recipient_name,
            recipient_email=recipient_email,
            expires_at=expiry_from_now(settings.signing_link_expiry_hours),
        )
    )
    return request, signing_url(request.token)
