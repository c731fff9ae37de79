"""
LINE Messaging API client
Sends push/reply messages on behalf of an organization's LINE channel
"""

import asyncio
import logging
from typing import Optional

import httpx

from ..config import LINE_API_BASE, LINE_PUSH_MAX_RETRIES, LINE_REQUEST_TIMEOUT
from ..exceptions import LineApiError

logger = logging.getLogger(__name__)


def create_text_message(text: str) -> dict:
    return {"type": "text", "text": text}


class LineMessagingClient:
    """Thin async wrapper around the LINE Messaging API for one channel access token"""

    def __init__(
        self,
        access_token: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff_seconds: float = 1.0,
    ):
        self.access_token = access_token
        self.transport = transport
        self.backoff_seconds = backoff_seconds

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=LINE_API_BASE,
            headers={"Authorization": f"Bearer {self.access_token}"},
            timeout=LINE_REQUEST_TIMEOUT,
            transport=self.transport,
        )

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> dict:
        async with self._client() as client:
            response = await client.request(method, path, json=payload)
        if response.status_code >= 300:
            logger.error(f"❌ LINE API {method} {path} failed: HTTP {response.status_code}")
            raise LineApiError(response.status_code, response.text)
        return response.json() if response.content else {}

    async def push_message(self, user_id: str, messages: list[dict]) -> None:
        await self._request("POST", "/message/push", {"to": user_id, "messages": messages})

    async def push_message_with_retry(
        self, user_id: str, messages: list[dict], max_retries: int = LINE_PUSH_MAX_RETRIES
    ) -> None:
        """Push with exponential backoff (1s, 2s, 4s...); re-raises the last error"""
        last_error: Optional[Exception] = None
        max_retries = max(1, max_retries)
        for attempt in range(max_retries):
            try:
                await self.push_message(user_id, messages)
                return
            except (LineApiError, httpx.HTTPError) as e:
                last_error = e
                logger.warning(f"⚠️ Push message attempt {attempt + 1} failed: {str(e)}")
                if attempt < max_retries - 1:
                    await asyncio.sleep(self.backoff_seconds * (2**attempt))
        raise last_error

    async def reply_message(self, reply_token: str, messages: list[dict]) -> None:
        await self._request(
            "POST", "/message/reply", {"replyToken": reply_token, "messages": messages}
        )

    async def get_profile(self, user_id: str) -> dict:
        return await self._request("GET", f"/profile/{user_id}")
