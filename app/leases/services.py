# app/leases/services.py

from typing import List, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.core.dependencies import get_email_service
from app.esign.repository import SignatureRequestRepository
from app.esign.schemas import SigningRole
from app.esign.services import issue_signature_request
from app.esign.utils import (
    landlord_display_name,
    property_label,
    render_lease_html,
    tenant_display_name,
)
from app.landlords.models import Landlord
from app.leases.exceptions import (
    InvalidSigningRoleException,
    LandlordMissingException,
    LandlordOwnerNotFoundException,
    LeaseAccessDeniedException,
    LeaseNotFoundException,
)
from app.leases.models import Lease
from app.leases.repository import LeaseRepository
from app.leases.schemas import (
    LeaseSigningDetail,
    LeaseSigningSummary,
    SignatureRequestSummary,
    SignSessionResponse,
    SigningStatus,
)
from app.notifications.schemas import NotificationType
from app.notifications.services import NotificationService, lease_action_url
from app.users.models import User
from app.utils.email_service import EmailService
from app.utils.general import as_utc
from app.utils.logger import get_logger

logger = get_logger(__name__)

SIGN_SESSION_SUBJECT = "Lease ready to sign"
LANDLORD_REMINDER_TITLE = "Lease ready for your signature"


def get_lease_repository(db: Session = Depends(get_db)) -> LeaseRepository:
    """Get lease repository"""
    return LeaseRepository(db)


def lease_summary(lease: Lease) -> LeaseSigningSummary:
    return LeaseSigningSummary(
        id=lease.id,
        status=lease.status,
        tenant_name=lease.tenant.name if lease.tenant else None,
        property_label=property_label(lease),
        tenant_signed_at=lease.tenant_signed_at,
        landlord_signed_at=lease.landlord_signed_at,
        signing_status=lease.signing_status,
    )


class LeaseService:
    """
    Lease signing management: issuing signing links and reporting progress.
    """

    def __init__(
        self,
        repo: LeaseRepository = Depends(get_lease_repository),
        email_service: EmailService = Depends(get_email_service),
    ):
        self.repo = repo
        self.db = repo.db
        self.email_service = email_service

    def _get_lease(self, lease_id: int) -> Lease:
        lease = self.repo.get_lease(lease_id)
        if not lease:
            raise LeaseNotFoundException(lease_id)
        return lease

    @staticmethod
    def _is_tenant(lease: Lease, user: User) -> bool:
        return lease.tenant_id is not None and lease.tenant_id == user.id

    @staticmethod
    def _is_landlord_owner(lease: Lease, user: User) -> bool:
        landlord = lease.landlord
        return bool(landlord and landlord.owner_user_id and landlord.owner_user_id == user.id)

    async def create_sign_session(
        self, lease_id: int, role: Optional[str], current_user: User
    ) -> SignSessionResponse:
        """
        Issue a signing link for the tenant or the landlord of a lease.
        Only the lease tenant may request a tenant link and only the landlord
        owner a landlord link.
        """
        try:
            signing_role = SigningRole(role)
        except ValueError as e:
            raise InvalidSigningRoleException(role) from e

        lease = self._get_lease(lease_id)

        allowed = (
            self._is_tenant(lease, current_user)
            if signing_role == SigningRole.TENANT
            else self._is_landlord_owner(lease, current_user)
        )
        if not allowed:
            raise LeaseAccessDeniedException(lease_id)

        landlord = lease.landlord
        if not landlord:
            raise LandlordMissingException(lease_id)

        if signing_role == SigningRole.TENANT:
            recipient_name = tenant_display_name(lease)
            recipient_email = lease.tenant.email if lease.tenant else None
        else:
            recipient_name = landlord_display_name(lease)
            recipient_email = (landlord.owner.email if landlord.owner else None) or current_user.email

        lease_html = render_lease_html(lease)
        request, url = issue_signature_request(
            SignatureRequestRepository(self.db), lease, signing_role, recipient_name, recipient_email
        )
        self.db.commit()
        logger.info("Signing session issued", lease_id=lease.id, role=signing_role.value, signature_request_id=request.id)

        if recipient_email:
            try:
                await self.email_service.send(
                    to=recipient_email,
                    subject=SIGN_SESSION_SUBJECT,
                    template_name="notification.html",
                    context={
                        "recipient_name": recipient_name,
                        "title": SIGN_SESSION_SUBJECT,
                        "message": "Click the link below to sign your lease.",
                        "action_url": url,
                        "action_label": "Sign lease",
                    },
                    landlord=landlord,
                )
            except Exception as e:
                logger.error("Failed to send signing email", lease_id=lease.id, error_message=str(e))

        return SignSessionResponse(
            token=request.token,
            url=f"/sign/{request.token}",
            expires_at=as_utc(request.expires_at),
            lease_html=lease_html,
            signature_request_id=request.id,
        )

    def get_signature_detail(self, lease_id: int, current_user: User) -> LeaseSigningDetail:
        """Signing progress of a lease with every signature request issued for it."""
        lease = self._get_lease(lease_id)
        if not (self._is_tenant(lease, current_user) or self._is_landlord_owner(lease, current_user)):
            raise LeaseAccessDeniedException(lease_id)

        summary = lease_summary(lease)
        return LeaseSigningDetail(
            **summary.model_dump(),
            signature_requests=[
                SignatureRequestSummary.model_validate(request)
                for request in lease.signature_requests
            ],
        )

    def list_landlord_leases(
        self,
        landlord: Landlord,
        current_user: User,
        signing_status: Optional[SigningStatus] = None,
    ) -> List[LeaseSigningSummary]:
        """Leases of the host's landlord, for its owner only."""
        if landlord.owner_user_id != current_user.id:
            raise LeaseAccessDeniedException()
        return [
            lease_summary(lease)
            for lease in self.repo.list_landlord_leases(landlord.id, signing_status)
        ]

    async def notify_landlord_to_sign(
        self, lease_id: int, notification_service: NotificationService
    ) -> None:
        """Remind the landlord owner that the lease awaits their signature."""
        lease = self._get_lease(lease_id)
        landlord = lease.landlord
        if not landlord or not landlord.owner_user_id:
            raise LandlordOwnerNotFoundException(lease_id)

        await notification_service.create_notification(
            user_id=landlord.owner_user_id,
            type=NotificationType.REMINDER,
            title=LANDLORD_REMINDER_TITLE,
            message=f"{tenant_display_name(lease)} has signed. Please sign to complete.",
            action_url=lease_action_url(lease.id),
            landlord_id=landlord.id,
        )
        self.db.commit()
