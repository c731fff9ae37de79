"""Cancellation schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_serializer

from ...utils.timezone import isoformat_utc
from .service import CancellationResult


class CancelRequest(BaseModel):
    applicationId: Optional[str] = None


class CapacityChange(BaseModel):
    eventId: str
    slotId: str
    previous: Optional[int] = None
    updated: Optional[int] = None
    reason: Optional[str] = None


class CancellationResponse(BaseModel):
    success: bool
    applicationId: str
    outcome: str
    status: str
    remindersCanceled: int
    stepDeliveriesSkipped: int
    capacityReleased: bool
    capacity: Optional[CapacityChange] = None
    slotAt: Optional[datetime] = None
    operations: list[str]

    @field_serializer("slotAt")
    def serialize_slot_at(self, value: Optional[datetime]):
        return isoformat_utc(value)

    @classmethod
    def from_result(cls, result: CancellationResult) -> "CancellationResponse":
        capacity = None
        if result.capacity is not None:
            capacity = CapacityChange(
                eventId=result.capacity.event_id,
                slotId=result.capacity.slot_id,
                previous=result.capacity.previous,
                updated=result.capacity.updated,
                reason=result.capacity.reason,
            )
        return cls(
            success=result.succeeded,
            applicationId=result.application_id,
            outcome=result.outcome,
            status=result.status,
            remindersCanceled=result.reminders_canceled,
            stepDeliveriesSkipped=result.step_deliveries_skipped,
            capacityReleased=result.capacity_released,
            capacity=capacity,
            slotAt=result.slot_at,
            operations=result.operations,
        )
