"""Cancellation service - cancels an application and fans out its side effects"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...exceptions import CancellationIncomplete, SlotContentionError
from ...models import ApplicationStatus
from ...utils.timezone import utcnow
from ..applications.repository import ApplicationRepository
from ..events.repository import EventRepository, SlotRelease
from ..notifications.repository import NotificationRepository

logger = logging.getLogger(__name__)

OUTCOME_CANCELED = "canceled"
OUTCOME_ALREADY_CANCELED = "already_canceled"
OUTCOME_NOT_CANCELABLE = "not_cancelable"


@dataclass
class CancellationResult:
    application_id: str
    outcome: str
    status: str
    reminders_canceled: int = 0
    step_deliveries_skipped: int = 0
    capacity_released: bool = False
    capacity: Optional[SlotRelease] = None
    slot_at: Optional[datetime] = None
    operations: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.outcome != OUTCOME_NOT_CANCELABLE


class CancellationService:
    """
    Single entry point for canceling an application.

    Steps run in order: status transition, reminders, step deliveries, slot
    capacity. Every step is idempotent, so calling cancel() again on an
    application that is already canceled finishes whatever a previous call
    left undone instead of failing.
    """

    def __init__(self, db: Session):
        self.db = db
        self.applications = ApplicationRepository()
        self.notifications = NotificationRepository()
        self.events = EventRepository()

    def cancel(self, application_id: str, now: Optional[datetime] = None) -> CancellationResult:
        now = now or utcnow()
        application = self.applications.get_application(self.db, application_id)

        if self.applications.transition_to_canceled(self.db, application_id, now):
            logger.info(f"🚫 Application {application_id} canceled")
            result = CancellationResult(application_id, OUTCOME_CANCELED, ApplicationStatus.CANCELED)
            result.operations.append("Application status changed to canceled")
        else:
            current_status = self.applications.get_status(self.db, application_id)
            if current_status != ApplicationStatus.CANCELED:
                logger.warning(
                    f"⚠️ Application {application_id} is not cancelable (status={current_status})"
                )
                return CancellationResult(
                    application_id,
                    OUTCOME_NOT_CANCELABLE,
                    current_status,
                    slot_at=application.slot_at,
                    operations=[f"Application is in {current_status} status, nothing changed"],
                )

            logger.info(f"🔧 Application {application_id} already canceled, completing side effects")
            result = CancellationResult(
                application_id, OUTCOME_ALREADY_CANCELED, ApplicationStatus.CANCELED
            )
            if self.applications.stamp_canceled_at(self.db, application_id, now):
                result.operations.append("Added canceledAt field")
            else:
                result.operations.append("canceledAt already exists")

        result.slot_at = application.slot_at
        completed = ["status"]

        try:
            result.reminders_canceled = self.notifications.cancel_pending_reminders(
                self.db, application_id
            )
            completed.append("reminders")
            result.operations.append(
                f"Canceled {result.reminders_canceled} reminders"
                if result.reminders_canceled
                else "No reminders to cancel"
            )

            result.step_deliveries_skipped = self.notifications.skip_pending_step_deliveries(
                self.db, application_id
            )
            completed.append("step_deliveries")
            result.operations.append(
                f"Skipped {result.step_deliveries_skipped} step deliveries"
                if result.step_deliveries_skipped
                else "No step deliveries to skip"
            )

            if application.event_id and application.slot_id:
                release = self.events.release_slot(
                    self.db, application.event_id, application.slot_id, application_id, now
                )
                result.capacity = release
                result.capacity_released = release.released
                if release.released:
                    result.operations.append(
                        f"Updated event capacity: {release.previous} → {release.updated}"
                    )
                else:
                    result.operations.append(f"Capacity not changed ({release.reason})")
            else:
                result.operations.append("No event info (capacity update skipped)")
            completed.append("capacity")
        except (SQLAlchemyError, SlotContentionError) as e:
            self.db.rollback()
            logger.error(
                f"❌ Cancellation of {application_id} stopped after {completed}: {str(e)}"
            )
            raise CancellationIncomplete(application_id, completed, e) from e

        logger.info(
            f"✅ Cancellation of {application_id} complete: "
            f"reminders={result.reminders_canceled}, steps={result.step_deliveries_skipped}, "
            f"capacity_released={result.capacity_released}"
        )
        return result
