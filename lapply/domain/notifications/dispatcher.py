"""
Notification dispatcher
Sends due reminders and step deliveries through each organization's LINE channel
"""

import logging
from datetime import datetime
from typing import Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import DISPATCH_BATCH_SIZE
from ...exceptions import LineApiError
from ...models import Organization, Reminder, StepDelivery
from ...services.line_service import LineMessagingClient, create_text_message
from ...utils.timezone import utcnow
from ..line_bot.repository import LineBotRepository
from ..line_bot.service import LineClientFactory
from .repository import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(
        self,
        db: Session,
        client_factory: LineClientFactory = LineMessagingClient,
        batch_size: int = DISPATCH_BATCH_SIZE,
    ):
        self.db = db
        self.repo = NotificationRepository()
        self.line_repo = LineBotRepository()
        self.client_factory = client_factory
        self.batch_size = batch_size
        self._clients: dict[str, Optional[LineMessagingClient]] = {}

    def _client_for(self, organization_id: str) -> Optional[LineMessagingClient]:
        """LINE client for an organization, or None when it has no usable access token"""
        if organization_id not in self._clients:
            organization: Optional[Organization] = self.line_repo.get_organization(
                self.db, organization_id
            )
            token = organization.line_channel_access_token if organization else None
            self._clients[organization_id] = self.client_factory(token) if token else None
        return self._clients[organization_id]

    def _has_consent(self, user_id: str) -> bool:
        line_user = self.line_repo.get_line_user(self.db, user_id)
        return bool(line_user and line_user.consent)

    async def send_due_reminders(self, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        stats = {"sent": 0, "skipped": 0, "failed": 0}

        reminders = self.repo.get_due_reminders(self.db, now, self.batch_size)
        logger.info(f"Found {len(reminders)} pending reminders")

        for reminder in reminders:
            reminder_id = reminder.id
            try:
                outcome = await self._send_reminder(reminder, now)
            except (LineApiError, httpx.HTTPError) as e:
                logger.error(f"❌ Failed to send reminder {reminder_id}: {str(e)}")
                outcome = "failed"
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"❌ Database error on reminder {reminder_id}: {str(e)}")
                outcome = "failed"
            stats[outcome] += 1

        return stats

    async def _send_reminder(self, reminder: Reminder, now: datetime) -> str:
        if not self._has_consent(reminder.user_id):
            logger.info(f"Skipping reminder {reminder.id} - user consent is false")
            # Marked sent so it is never retried
            self.repo.mark_reminder_sent(self.db, reminder, now)
            return "skipped"

        if not reminder.organization_id:
            logger.error(
                f"❌ Reminder {reminder.id} is missing organization_id - cannot send. Marking as sent."
            )
            self.repo.mark_reminder_sent(self.db, reminder, now)
            return "skipped"

        client = self._client_for(reminder.organization_id)
        if client is None:
            logger.error(
                f"❌ No LINE credentials for organization {reminder.organization_id}, "
                f"reminder {reminder.id} will retry on next run"
            )
            return "failed"

        await client.push_message_with_retry(
            reminder.user_id, [create_text_message(reminder.message)]
        )
        self.repo.mark_reminder_sent(self.db, reminder, now)
        logger.info(f"✅ Sent reminder {reminder.id} to user {reminder.user_id}")
        return "sent"

    async def deliver_due_step_deliveries(self, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        stats = {"sent": 0, "skipped": 0, "failed": 0}

        deliveries = self.repo.get_due_step_deliveries(self.db, now, self.batch_size)
        logger.info(f"Found {len(deliveries)} pending step deliveries")

        for delivery in deliveries:
            delivery_id = delivery.id
            try:
                outcome = await self._deliver_step(delivery, now)
            except (LineApiError, httpx.HTTPError) as e:
                logger.error(f"❌ Failed to send step delivery {delivery_id}: {str(e)}")
                outcome = "failed"
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"❌ Database error on step delivery {delivery_id}: {str(e)}")
                outcome = "failed"
            stats[outcome] += 1

        return stats

    async def _deliver_step(self, delivery: StepDelivery, now: datetime) -> str:
        if not self._has_consent(delivery.user_id):
            logger.info(f"Skipping step delivery {delivery.id} - user consent is false")
            self.repo.mark_step_delivery_skipped(self.db, delivery)
            return "skipped"

        if not delivery.organization_id:
            logger.error(
                f"❌ Step delivery {delivery.id} is missing organization_id - marking as skipped"
            )
            self.repo.mark_step_delivery_skipped(self.db, delivery)
            return "skipped"

        client = self._client_for(delivery.organization_id)
        if client is None:
            logger.error(
                f"❌ No LINE credentials for organization {delivery.organization_id}, "
                f"step delivery {delivery.id} will retry on next run"
            )
            return "failed"

        await client.push_message_with_retry(
            delivery.user_id, [create_text_message(delivery.message)]
        )
        self.repo.mark_step_delivery_sent(self.db, delivery, now)
        logger.info(
            f"✅ Sent step delivery {delivery.id} (step {delivery.step_number}) to user {delivery.user_id}"
        )
        return "sent"
