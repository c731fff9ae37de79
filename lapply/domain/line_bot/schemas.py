"""LINE webhook payload schemas (only the fields the bot uses)"""

from typing import Optional

from pydantic import BaseModel


class WebhookMessage(BaseModel):
    type: str
    text: Optional[str] = None


class WebhookSource(BaseModel):
    type: Optional[str] = None
    userId: Optional[str] = None


class WebhookEvent(BaseModel):
    type: str
    replyToken: Optional[str] = None
    source: WebhookSource = WebhookSource()
    message: Optional[WebhookMessage] = None


class WebhookPayload(BaseModel):
    destination: Optional[str] = None
    events: list[WebhookEvent] = []
