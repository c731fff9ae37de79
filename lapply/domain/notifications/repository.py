"""Notification repository - reminders and step deliveries scheduled against applications"""

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Reminder, StepDelivery, StepDeliveryStatus


class NotificationRepository:
    """
    Repository for reminder and step-delivery records.

    Bulk flips are issued as a single UPDATE and committed on their own, so each
    call changes every matched row or none of them.
    """

    # Cancellation side effects
    @staticmethod
    def cancel_pending_reminders(db: Session, application_id: str) -> int:
        """Set canceled=true on the application's not-yet-canceled reminders"""
        updated = (
            db.query(Reminder)
            .filter(Reminder.application_id == application_id, Reminder.canceled.is_(False))
            .update({"canceled": True}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def skip_pending_step_deliveries(db: Session, application_id: str) -> int:
        """Set status=skipped on the application's pending step deliveries"""
        updated = (
            db.query(StepDelivery)
            .filter(
                StepDelivery.application_id == application_id,
                StepDelivery.status == StepDeliveryStatus.PENDING,
            )
            .update({"status": StepDeliveryStatus.SKIPPED}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def skip_pending_step_deliveries_for_user(
        db: Session, user_id: str, organization_id: str
    ) -> int:
        """Skip every pending step delivery of a user (opt-out via "配信停止")"""
        updated = (
            db.query(StepDelivery)
            .filter(
                StepDelivery.user_id == user_id,
                StepDelivery.organization_id == organization_id,
                StepDelivery.status == StepDeliveryStatus.PENDING,
            )
            .update({"status": StepDeliveryStatus.SKIPPED}, synchronize_session=False)
        )
        db.commit()
        return updated

    # Dispatcher queries
    @staticmethod
    def get_due_reminders(db: Session, now: datetime, limit: int) -> list[Reminder]:
        return (
            db.query(Reminder)
            .filter(
                Reminder.scheduled_at <= now,
                Reminder.sent_at.is_(None),
                Reminder.canceled.is_(False),
            )
            .order_by(Reminder.scheduled_at.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_due_step_deliveries(db: Session, now: datetime, limit: int) -> list[StepDelivery]:
        return (
            db.query(StepDelivery)
            .filter(
                StepDelivery.scheduled_at <= now,
                StepDelivery.sent_at.is_(None),
                StepDelivery.status == StepDeliveryStatus.PENDING,
            )
            .order_by(StepDelivery.scheduled_at.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def mark_reminder_sent(db: Session, reminder: Reminder, now: datetime) -> None:
        reminder.sent_at = now
        db.commit()

    @staticmethod
    def mark_step_delivery_sent(db: Session, delivery: StepDelivery, now: datetime) -> None:
        delivery.sent_at = now
        delivery.status = StepDeliveryStatus.SENT
        db.commit()

    @staticmethod
    def mark_step_delivery_skipped(db: Session, delivery: StepDelivery) -> None:
        delivery.status = StepDeliveryStatus.SKIPPED
        db.commit()

    # Admin / debugging
    @staticmethod
    def get_counts_for_application(db: Session, application_id: str) -> dict:
        """Reminder and step-delivery counts of one application, by state"""
        reminders_pending = (
            db.query(func.count(Reminder.id))
            .filter(Reminder.application_id == application_id, Reminder.canceled.is_(False))
            .scalar()
        )
        reminders_canceled = (
            db.query(func.count(Reminder.id))
            .filter(Reminder.application_id == application_id, Reminder.canceled.is_(True))
            .scalar()
        )
        step_rows = (
            db.query(StepDelivery.status, func.count(StepDelivery.id))
            .filter(StepDelivery.application_id == application_id)
            .group_by(StepDelivery.status)
            .all()
        )
        return {
            "reminders": {"active": reminders_pending, "canceled": reminders_canceled},
            "step_deliveries": {status: count for status, count in step_rows},
        }
