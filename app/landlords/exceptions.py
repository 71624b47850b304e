# app/landlords/exceptions.py

"""
Exceptions raised while resolving the landlord a request belongs to.
"""

from typing import Optional

from fastapi import HTTPException, status


class LandlordBaseException(Exception):
    """Base exception for landlord resolution errors."""
    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class HostHeaderMissingException(LandlordBaseException):
    """Raised when the request carries no Host header."""
    def __init__(self):
        super().__init__("Host header is missing.")


class LandlordNotResolvedException(LandlordBaseException):
    """Raised when no landlord matches the host."""
    def __init__(self, host: str, reason: str):
        super().__init__(reason, {"host": host})


def convert_to_http_exception(exc: LandlordBaseException) -> HTTPException:
    """
    Convert a LandlordBaseException to an HTTPException with appropriate status code.
    """
    if isinstance(exc, HostHeaderMissingException):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"success": False, "message": exc.message},
        )
    if isinstance(exc, LandlordNotResolvedException):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"success": False, "message": exc.message},
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"success": False, "message": str(exc)},
    )
