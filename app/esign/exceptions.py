# app/esign/exceptions.py

"""
Custom exceptions for the lease signing flow.
Each maps to one HTTP status in convert_to_http_exception.
"""

from typing import Optional

from fastapi import HTTPException, status


class SigningBaseException(Exception):
    """Base exception for all signing errors."""
    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class SignatureRequestNotFoundException(SigningBaseException):
    """Raised when a token, or the lease behind it, does not exist."""
    def __init__(self, message: str = "Not found", lease_id: Optional[int] = None):
        super().__init__(message, {"lease_id": lease_id} if lease_id else None)


class SignatureRequestExpiredException(SigningBaseException):
    """Raised when a signing link is past its expiry."""
    def __init__(self):
        super().__init__("Link expired")


class SignatureAlreadyCompletedException(SigningBaseException):
    """Raised when a token has already been used to sign."""
    def __init__(self):
        super().__init__("Already signed")


class SigningValidationException(SigningBaseException):
    """Raised when the submitted signature payload is incomplete or invalid."""
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)


class SigningDownstreamException(SigningBaseException):
    """Raised when rendering, stamping or storing the signed document fails."""
    def __init__(self, message: str = "Failed to process signature"):
        super().__init__(message)


def convert_to_http_exception(exc: SigningBaseException) -> HTTPException:
    """
    Convert a SigningBaseException to an HTTPException with appropriate status code.
    """
    status_map = {
        SignatureRequestNotFoundException: status.HTTP_404_NOT_FOUND,
        SignatureRequestExpiredException: status.HTTP_410_GONE,
        SignatureAlreadyCompletedException: status.HTTP_400_BAD_REQUEST,
        SigningValidationException: status.HTTP_400_BAD_REQUEST,
        SigningDownstreamException: status.HTTP_500_INTERNAL_SERVER_ERROR,
    }
    status_code = status_map.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(
        status_code=status_code,
        detail={"message": exc.message, "details": exc.details},
    )
