# app/landlords/services.py

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.landlords.exceptions import (
    HostHeaderMissingException,
    LandlordBaseException,
    LandlordNotResolvedException,
    convert_to_http_exception,
)
from app.landlords.models import Landlord
from app.landlords.utils import bare_host, extract_subdomain
from app.utils.logger import get_logger

logger = get_logger(__name__)


def get_landlord_by_subdomain(db: Session, subdomain: str) -> Optional[Landlord]:
    """Fetch a landlord by its subdomain."""
    stmt = select(Landlord).where(Landlord.subdomain == subdomain.lower())
    return db.execute(stmt).scalar_one_or_none()


def get_landlord_by_custom_domain(db: Session, hostname: str) -> Optional[Landlord]:
    """Fetch a landlord by its custom domain."""
    stmt = select(Landlord).where(func.lower(Landlord.custom_domain) == hostname)
    return db.execute(stmt).scalar_one_or_none()


def resolve_landlord(db: Session, host: Optional[str]) -> Landlord:
    """
    Resolve the landlord a Host header points at.

    Custom domains win over subdomains so a landlord who moved to their own
    domain keeps working on both.
    """
    if not host:
        raise HostHeaderMissingException()

    hostname = bare_host(host)
    landlord = get_landlord_by_custom_domain(db, hostname)
    if landlord:
        return landlord

    subdomain = extract_subdomain(host, settings.root_domain)
    if not subdomain:
        raise LandlordNotResolvedException(host, "No landlord subdomain on this host.")

    landlord = get_landlord_by_subdomain(db, subdomain)
    if not landlord:
        raise LandlordNotResolvedException(host, "Landlord not found for this subdomain.")

    logger.debug("Resolved landlord from host", host=hostname, landlord_id=landlord.id)
    return landlord


def get_current_landlord(request: Request, db: Session = Depends(get_db)) -> Landlord:
    """
    Dependency scoping a request to the landlord its Host header resolves to.
    """
    try:
        return resolve_landlord(db, request.headers.get("host"))
    except LandlordBaseException as e:
        raise convert_to_http_exception(e) from e
