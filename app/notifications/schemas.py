# app/notifications/schemas.py

from enum import Enum as PyEnum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class NotificationType(str, PyEnum):
    """Notification categories"""
    APPLICATION = "application"
    MESSAGE = "message"
    MAINTENANCE = "maintenance"
    PAYMENT = "payment"
    REMINDER = "reminder"


class ReminderResult(BaseModel):
    """Outcome of one lease in the reminder sweep"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    lease_id: int
    landlord_id: int
    success: bool
    error: Optional[str] = None


class ReminderSweepResponse(BaseModel):
    """Response of the lease signing reminder job"""

    success: bool
    processed: int
    results: List[ReminderResult] = []
