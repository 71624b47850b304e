# app/notifications/services.py

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.core.dependencies import get_email_service
from app.esign.utils import tenant_display_name
from app.landlords.models import Landlord
from app.leases.repository import LeaseRepository
from app.notifications.models import Notification
from app.notifications.schemas import NotificationType, ReminderResult
from app.users.models import User
from app.utils.email_service import EmailService
from app.utils.general import start_of_day, utc_now
from app.utils.logger import get_logger

logger = get_logger(__name__)

REMINDER_TITLE = "Lease Awaiting Your Signature"
NOTIFICATION_TEMPLATE = "notification.html"


def lease_action_url(lease_id: int) -> str:
    """Admin page of a lease"""
    return f"/admin/leases/{lease_id}"


class NotificationService:
    """
    Persists notifications and delivers them by email.
    """

    def __init__(
        self,
        db: Session = Depends(get_db),
        email_service: EmailService = Depends(get_email_service),
    ):
        self.db = db
        self.email_service = email_service

    async def create_notification(
        self,
        *,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        landlord_id: Optional[int] = None,
    ) -> Notification:
        """
        Store a notification and email it to the user. Email goes out only
        with landlord branding available, and a failed email does not undo
        the notification.
        """
        notification = Notification(
            user_id=user_id,
            type=type.value,
            title=title,
            message=message,
            action_url=action_url,
            meta_data=metadata,
        )
        self.db.add(notification)
        self.db.flush()
        self.db.refresh(notification)

        user = self.db.get(User, user_id)
        landlord = self.db.get(Landlord, landlord_id) if landlord_id else None
        if user and user.email and landlord:
            await self._send_email(user, landlord, title, message, action_url)

        logger.info("Notification created", notification_id=notification.id, user_id=user_id, type=type.value)
        return notification

    async def _send_email(
        self, user: User, landlord: Landlord, title: str, message: str, action_url: Optional[str]
    ) -> None:
        if action_url and action_url.startswith("/"):
            action_url = f"{settings.signing_base_url}{action_url}"
        try:
            await self.email_service.send(
                to=user.email,
                subject=title,
                template_name=NOTIFICATION_TEMPLATE,
                context={
                    "recipient_name": user.name,
                    "title": title,
                    "message": message,
                    "action_url": action_url,
                    "action_label": "View details",
                },
                landlord=landlord,
            )
        except Exception as e:
            logger.error("Failed to send notification email", user_id=user.id, error_message=str(e))

    def has_reminder_since(self, user_id: int, action_url: str, since: datetime) -> bool:
        """Whether a reminder pointing at `action_url` was already created since `since`"""
        stmt = (
            select(Notification.id)
            .where(
                Notification.user_id == user_id,
                Notification.type == NotificationType.REMINDER.value,
                Notification.action_url.contains(action_url),
                Notification.created_on >= since,
            )
            .limit(1)
        )
        return self.db.execute(stmt).first() is not None

    async def send_lease_signing_reminders(self, now: Optional[datetime] = None) -> List[ReminderResult]:
        """
        Remind landlords of recent active leases the tenant signed and they
        did not. One reminder per lease per landlord per UTC day.
        """
        now = now or utc_now()
        leases = LeaseRepository(self.db).list_awaiting_landlord_signature(
            now - timedelta(days=settings.reminder_lookback_days)
        )
        today = start_of_day(now)

        results: List[ReminderResult] = []
        for lease in leases:
            landlord = lease.landlord
            if not landlord or not landlord.owner_user_id:
                continue

            action_url = lease_action_url(lease.id)
            if self.has_reminder_since(landlord.owner_user_id, action_url, today):
                continue

            unit = lease.unit
            try:
                await self.create_notification(
                    user_id=landlord.owner_user_id,
                    type=NotificationType.REMINDER,
                    title=REMINDER_TITLE,
                    message=(
                        f"{tenant_display_name(lease)} has signed the lease for "
                        f"{unit.property.name} - {unit.name}. "
                        "Please review and sign to complete the agreement."
                    ),
                    action_url=action_url,
                    metadata={"leaseId": lease.id},
                    landlord_id=landlord.id,
                )
                results.append(ReminderResult(lease_id=lease.id, landlord_id=landlord.id, success=True))
            except Exception as e:
                logger.error("Failed to send lease signing reminder", lease_id=lease.id, error_message=str(e))
                results.append(
                    ReminderResult(lease_id=lease.id, landlord_id=landlord.id, success=False, error=str(e))
                )

        self.db.commit()
        logger.info("Lease signing reminders processed", processed=len(results))
        return results
