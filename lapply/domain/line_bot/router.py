"""LINE webhook router"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...services.line_service import LineMessagingClient
from .schemas import WebhookPayload
from .service import LineBotService, LineClientFactory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/line", tags=["LINE"])


def get_line_client_factory() -> LineClientFactory:
    return LineMessagingClient


def get_line_bot_service(
    db: Session = Depends(get_db),
    client_factory: LineClientFactory = Depends(get_line_client_factory),
) -> LineBotService:
    """Dependency injection for LineBotService"""
    return LineBotService(db, client_factory)


@router.post("/webhook/{organization_id}")
async def line_webhook(
    organization_id: str,
    payload: WebhookPayload,
    service: LineBotService = Depends(get_line_bot_service),
):
    """LINE webhook for one organization's channel. Always answers 200 so LINE does not redeliver."""
    handled = await service.handle_events(organization_id, payload.events)
    return {"status": "ok", "handled": handled}
