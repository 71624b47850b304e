# app/landlords/router.py

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.landlords.exceptions import LandlordBaseException, convert_to_http_exception
from app.landlords.schemas import LandlordByHostResponse
from app.landlords.services import resolve_landlord
from app.utils.logger import get_logger

router = APIRouter(tags=["Landlords"], prefix="/api/landlord")
logger = get_logger(__name__)


@router.get("/by-host", response_model=LandlordByHostResponse)
def get_landlord_by_host(request: Request, db: Session = Depends(get_db)):
    """
    Resolve the landlord serving the current host (subdomain or custom domain).
    """
    try:
        landlord = resolve_landlord(db, request.headers.get("host"))
        return LandlordByHostResponse(success=True, landlord=landlord.to_dict())
    except LandlordBaseException as e:
        raise convert_to_http_exception(e) from e
    except Exception as e:
        logger.error("Error resolving landlord by host", error_message=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"success": False, "message": "Failed to resolve landlord by host."},
        ) from e
