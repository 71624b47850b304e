# app/notifications/router.py

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from app.core.config import settings
from app.notifications.schemas import ReminderSweepResponse
from app.notifications.services import NotificationService
from app.utils.logger import get_logger

router = APIRouter(tags=["Notifications"], prefix="/api/cron")
logger = get_logger(__name__)


def verify_cron_secret(authorization: Optional[str] = Header(default=None)) -> None:
    """Requires `Bearer {cron_secret}` whenever a secret is configured."""
    if settings.cron_secret and authorization != f"Bearer {settings.cron_secret}":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Unauthorized"},
        )


@router.get(
    "/lease-signing-reminders",
    response_model=ReminderSweepResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(verify_cron_secret)],
)
async def lease_signing_reminders(service: NotificationService = Depends()):
    """
    Scheduled sweep reminding landlords of leases waiting on their signature.
    """
    try:
        results = await service.send_lease_signing_reminders()
        return ReminderSweepResponse(success=True, processed=len(results), results=results)
    except Exception as e:
        logger.error("Lease signing reminders job failed", error_message=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to process lease signing reminders"},
        ) from e
