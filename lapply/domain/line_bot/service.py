"""LINE bot service - handles webhook events for one organization's channel"""

import logging
from typing import Callable
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from ... import messages
from ...config import APP_BASE_URL
from ...exceptions import CancellationIncomplete
from ...models import Organization
from ...services.line_service import LineMessagingClient, create_text_message
from ..applications.service import ApplicationQueryService
from ..cancellation.service import OUTCOME_NOT_CANCELABLE, CancellationService
from ..notifications.repository import NotificationRepository
from .repository import LineBotRepository
from .schemas import WebhookEvent

logger = logging.getLogger(__name__)

LineClientFactory = Callable[[str], LineMessagingClient]


def cancel_page_url(user_id: str, organization_id: str) -> str:
    """Link to the web cancel page for users with several bookings"""
    query = urlencode({"userId": user_id, "orgId": organization_id})
    return f"{APP_BASE_URL}/cancel-booking?{query}"


class LineBotService:
    """Command handling for text messages and follow events"""

    def __init__(self, db: Session, client_factory: LineClientFactory = LineMessagingClient):
        self.db = db
        self.repo = LineBotRepository()
        self.notifications = NotificationRepository()
        self.queries = ApplicationQueryService(db)
        self.cancellation = CancellationService(db)
        self.client_factory = client_factory

    async def handle_events(self, organization_id: str, events: list[WebhookEvent]) -> int:
        """Process webhook events; returns how many were handled without error"""
        organization = self.repo.get_organization(self.db, organization_id)
        if not organization:
            logger.warning(f"⚠️ Webhook received for unknown organization {organization_id}")
            return 0
        if organization.disabled:
            logger.info(f"Organization {organization_id} is disabled, ignoring webhook")
            return 0
        if not organization.line_channel_access_token:
            logger.error(f"❌ Organization {organization_id} has no LINE access token")
            return 0

        client = self.client_factory(organization.line_channel_access_token)
        handled = 0
        for event in events:
            try:
                if event.type == "message" and event.message and event.message.type == "text":
                    await self.handle_text_message(organization, client, event)
                elif event.type == "follow":
                    await self.handle_follow(organization, client, event)
                else:
                    continue
                handled += 1
            except Exception as e:
                # One bad event must not block the rest of the batch
                self.db.rollback()
                logger.error(f"❌ Error handling {event.type} event for {organization_id}: {str(e)}")
        return handled

    async def handle_text_message(
        self, organization: Organization, client: LineMessagingClient, event: WebhookEvent
    ) -> None:
        user_id = event.source.userId
        if not user_id or not event.replyToken:
            return

        text = (event.message.text or "").strip()
        logger.info(f"💬 Command from {user_id} in {organization.id}: {text[:30]}")

        if text == messages.CANCEL_COMMAND:
            reply = self._cancel_reservation(user_id, organization.id)
        elif text == messages.CONFIRM_COMMAND:
            application = self.queries.latest_applied_application(user_id, organization.id)
            if application and application.slot_at:
                reply = messages.reservation_confirmation_message(
                    application.plan or "", application.slot_at
                )
            else:
                reply = messages.no_reservation_message()
        elif text == messages.STOP_COMMAND:
            self.repo.update_consent(self.db, user_id, organization.id, False)
            skipped = self.notifications.skip_pending_step_deliveries_for_user(
                self.db, user_id, organization.id
            )
            logger.info(f"🔕 User {user_id} opted out, {skipped} step deliveries skipped")
            reply = messages.consent_update_message(False)
        elif text in messages.RESUME_COMMANDS:
            self.repo.update_consent(self.db, user_id, organization.id, True)
            reply = messages.consent_update_message(True)
        else:
            auto_reply = self.repo.get_auto_reply(self.db, organization.id, text)
            if auto_reply and text in messages.CONSULTATION_TRIGGERS:
                request = self.repo.create_consultation_request(self.db, user_id, organization.id)
                logger.info(f"🗓️ Consultation request {request.id} from {user_id} in {organization.id}")
            reply = auto_reply.message if auto_reply else messages.unknown_command_message()

        await client.reply_message(event.replyToken, [create_text_message(reply)])

    def _cancel_reservation(self, user_id: str, organization_id: str) -> str:
        applications = self.queries.find_cancelable_applications(user_id, organization_id)
        if not applications:
            return messages.no_reservation_message()

        if len(applications) > 1:
            return messages.multiple_reservations_message(
                [a.slot_at for a in applications], cancel_page_url(user_id, organization_id)
            )

        application = applications[0]
        try:
            result = self.cancellation.cancel(application.id)
        except CancellationIncomplete:
            # Status already flipped; the admin repair endpoint or a retry finishes the rest
            logger.warning(f"⚠️ Cancellation of {application.id} via LINE left side effects pending")
            return messages.cancellation_message(application.slot_at)

        if result.outcome == OUTCOME_NOT_CANCELABLE:
            return messages.no_reservation_message()
        return messages.cancellation_message(result.slot_at)

    async def handle_follow(
        self, organization: Organization, client: LineMessagingClient, event: WebhookEvent
    ) -> None:
        user_id = event.source.userId
        if not user_id:
            return

        profile = await client.get_profile(user_id)
        self.repo.upsert_line_user(
            self.db, user_id, profile.get("displayName"), True, organization.id
        )
        logger.info(f"👋 New follower {user_id} for organization {organization.id}")

        liff_url = f"https://liff.line.me/{organization.liff_id or ''}"
        text = messages.welcome_message(liff_url, organization.welcome_message)
        await client.push_message(user_id, [create_text_message(text)])
