"""Application domain schemas - Pydantic models for responses"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_serializer

from ...utils.timezone import isoformat_utc


class CancelableApplication(BaseModel):
    """A booking the user can still cancel"""

    id: str
    slotAt: Optional[datetime] = None
    plan: Optional[str] = None
    createdAt: Optional[datetime] = None

    @field_serializer("slotAt", "createdAt")
    def serialize_datetime(self, value: Optional[datetime]):
        return isoformat_utc(value)


class CancelableApplicationsResponse(BaseModel):
    userId: str
    organizationId: str
    applications: list[CancelableApplication]
    count: int


class ApplicationResponse(BaseModel):
    """Dashboard view of an application"""

    id: str
    organizationId: str
    userId: str
    eventId: Optional[str] = None
    slotId: Optional[str] = None
    plan: Optional[str] = None
    status: str
    slotAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    canceledAt: Optional[datetime] = None

    @field_serializer("slotAt", "createdAt", "canceledAt")
    def serialize_datetime(self, value: Optional[datetime]):
        return isoformat_utc(value)
