# app/landlords/schemas.py

from pydantic import BaseModel


class LandlordSummary(BaseModel):
    """Public landlord details exposed on branded hosts."""

    id: int
    name: str
    subdomain: str


class LandlordByHostResponse(BaseModel):
    """Response of the host resolution endpoint."""

    success: bool
    landlord: LandlordSummary
