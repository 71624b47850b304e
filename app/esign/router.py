# app/esign/router.py

import json

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.esign.exceptions import SigningBaseException, convert_to_http_exception
from app.esign.schemas import SignatureResult, SigningSessionResponse
from app.esign.services import SigningService
from app.utils.general import get_client_ip
from app.utils.logger import get_logger

router = APIRouter(tags=["Esign"], prefix="/api/sign")
logger = get_logger(__name__)


@router.get("/{token}", response_model=SigningSessionResponse)
async def get_signing_session(token: str, service: SigningService = Depends()):
    """
    Lease document and recipient details for a signing link. No login required.
    """
    try:
        return await service.get_session(token)
    except SigningBaseException as e:
        raise convert_to_http_exception(e) from e
    except Exception as e:
        logger.error("Error loading signing session", error_message=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to load signing session"},
        ) from e


@router.post("/{token}", response_model=SignatureResult)
async def submit_signature(token: str, request: Request, service: SigningService = Depends()):
    """
    Sign a lease with a drawn signature. The body is read leniently: a body
    that is not JSON is treated as empty and fails validation.
    """
    raw = await request.body()
    try:
        payload = json.loads(raw) if raw else {}
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = {}

    try:
        return await service.submit_signature(
            token,
            payload,
            ip=get_client_ip(request),
            user_agent=request.headers.get("user-agent", "unknown"),
        )
    except SigningBaseException as e:
        raise convert_to_http_exception(e) from e
    except Exception as e:
        logger.error("Error submitting signature", error_message=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to process signature. Please try again."},
        ) from e
