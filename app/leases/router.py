### app/leases/router.py

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import ValidationError

from app.landlords.models import Landlord
from app.landlords.services import get_current_landlord
from app.leases.exceptions import (
    InvalidSigningRoleException,
    LeaseBaseException,
    convert_to_http_exception,
)
from app.leases.schemas import (
    LeaseSigningDetail,
    LeaseSigningSummary,
    NotifySignResponse,
    SignSessionRequest,
    SignSessionResponse,
    SigningStatus,
)
from app.leases.services import LeaseService
from app.notifications.services import NotificationService
from app.users.models import User
from app.users.utils import get_current_user
from app.utils.logger import get_logger

router = APIRouter(tags=["Leases"], prefix="/api/leases")
landlord_router = APIRouter(tags=["Leases"], prefix="/api/landlord")
logger = get_logger(__name__)


@router.post("/{lease_id}/sign-session", response_model=SignSessionResponse)
async def create_sign_session(
    lease_id: int,
    request: Request,
    lease_service: LeaseService = Depends(),
    logged_in_user: User = Depends(get_current_user),
):
    """
    Issue a signing link for the tenant or landlord of a lease.
    """
    raw = await request.body()
    try:
        body = json.loads(raw) if raw else {}
    except (json.JSONDecodeError, UnicodeDecodeError):
        body = {}
    if not isinstance(body, dict):
        body = {}

    try:
        payload = SignSessionRequest.model_validate(body)
        return await lease_service.create_sign_session(lease_id, payload.role, logged_in_user)
    except ValidationError as e:
        raise convert_to_http_exception(InvalidSigningRoleException(str(body.get("role")))) from e
    except LeaseBaseException as e:
        raise convert_to_http_exception(e) from e
    except Exception as e:
        logger.error("Error creating sign session", lease_id=lease_id, error_message=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to create signing session"},
        ) from e


@router.get("/{lease_id}/signatures", response_model=LeaseSigningDetail)
def get_lease_signatures(
    lease_id: int,
    lease_service: LeaseService = Depends(),
    logged_in_user: User = Depends(get_current_user),
):
    """
    Signing progress of a lease and its signature requests.
    """
    try:
        return lease_service.get_signature_detail(lease_id, logged_in_user)
    except LeaseBaseException as e:
        raise convert_to_http_exception(e) from e


@router.post("/{lease_id}/notify-sign", response_model=NotifySignResponse)
async def notify_sign(
    lease_id: int,
    lease_service: LeaseService = Depends(),
    notification_service: NotificationService = Depends(),
    logged_in_user: User = Depends(get_current_user),
):
    """
    Remind the landlord that a lease is waiting for their signature.
    """
    try:
        await lease_service.notify_landlord_to_sign(lease_id, notification_service)
        return NotifySignResponse(success=True)
    except LeaseBaseException as e:
        raise convert_to_http_exception(e) from e


@landlord_router.get("/leases", response_model=List[LeaseSigningSummary])
def list_landlord_leases(
    signing_status: Optional[SigningStatus] = Query(None, alias="signingStatus"),
    landlord: Landlord = Depends(get_current_landlord),
    lease_service: LeaseService = Depends(),
    logged_in_user: User = Depends(get_current_user),
):
    """
    Leases of the landlord serving this host, with their signing status.
    """
    try:
        return lease_service.list_landlord_leases(landlord, logged_in_user, signing_status)
    except LeaseBaseException as e:
        raise convert_to_http_exception(e) from e
