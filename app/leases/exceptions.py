# app/leases/exceptions.py

"""
Custom exceptions for lease signing management.
"""

from typing import Optional

from fastapi import HTTPException, status


class LeaseBaseException(Exception):
    """Base exception for all lease errors."""
    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class LeaseNotFoundException(LeaseBaseException):
    """Raised when a lease does not exist."""
    def __init__(self, lease_id: int):
        super().__init__("Lease not found", {"lease_id": lease_id})


class LeaseAccessDeniedException(LeaseBaseException):
    """Raised when the caller is neither the lease tenant nor the landlord owner."""
    def __init__(self, lease_id: Optional[int] = None):
        super().__init__("Unauthorized", {"lease_id": lease_id} if lease_id else None)


class InvalidSigningRoleException(LeaseBaseException):
    """Raised when a signing role is not tenant or landlord."""
    def __init__(self, role: Optional[str]):
        super().__init__("Invalid role", {"role": role})


class LandlordMissingException(LeaseBaseException):
    """Raised when the leased property has no landlord."""
    def __init__(self, lease_id: int):
        super().__init__("Property landlord missing", {"lease_id": lease_id})


class LandlordOwnerNotFoundException(LeaseBaseException):
    """Raised when the lease's landlord has no owning user to notify."""
    def __init__(self, lease_id: int):
        super().__init__("Landlord not found", {"lease_id": lease_id})


def convert_to_http_exception(exc: LeaseBaseException) -> HTTPException:
    """
    Convert a LeaseBaseException to an HTTPException with appropriate status code.
    """
    if isinstance(exc, (LeaseNotFoundException, LandlordOwnerNotFoundException)):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, LeaseAccessDeniedException):
        status_code = status.HTTP_401_UNAUTHORIZED
    elif isinstance(exc, (InvalidSigningRoleException, LandlordMissingException)):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(
        status_code=status_code,
        detail={"message": exc.message, "details": exc.details},
    )
