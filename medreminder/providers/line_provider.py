"""
LINE Messaging API provider.

Pushes flex messages to linked LINE users and replies to webhook events.
"""

import base64
import hashlib
import hmac
import re
from typing import Any, Dict, List, Optional

import httpx

from medreminder.providers.base_provider import (
    InvalidRecipientError,
    NotificationProvider,
    ProviderInitializationError,
    TransientDeliveryError,
)
from medreminder.utils.logger import get_logger

logger = get_logger(__name__)

LINE_USER_ID_PATTERN = re.compile(r"^U[0-9a-f]{32}$")


def verify_signature(body: bytes, channel_secret: str, signature: str) -> bool:
    """Check an ``X-Line-Signature`` header against the raw request body."""
    if not channel_secret or not signature:
        return False
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("utf-8")
    return hmac.compare_digest(expected, signature)


class LineMessagingProvider(NotificationProvider):
    """Push and reply through the LINE Messaging API."""

    def __init__(self, config: Dict[str, Any], client: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self.channel_secret = config.get("channel_secret", "")
        self.access_token = config.get("channel_access_token", "")
        self.base_url = config.get("base_url", "https://api.line.me").rstrip("/")
        self.timeout = config.get("timeout", 10.0)
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    async def initialize(self):
        """Verify the channel access token before the scheduler is armed."""
        if not self.access_token:
            raise ProviderInitializationError("LINE_CHANNEL_ACCESS_TOKEN is not configured")

        try:
            response = await self.client.get("/v2/bot/info", headers=self._headers())
        except httpx.HTTPError as e:
            raise ProviderInitializationError(
                f"Could not reach the LINE Messaging API: {e}",
                details={"error_class": e.__class__.__name__},
            ) from e

        if response.status_code in (401, 403):
            raise ProviderInitializationError(
                "LINE Messaging API rejected the channel access token",
                details={"status_code": response.status_code},
            )
        if response.status_code >= 400:
            raise ProviderInitializationError(
                f"LINE Messaging API returned {response.status_code} while checking the channel",
                details={"status_code": response.status_code, "body": response.text},
            )

        bot_info = response.json()
        logger.info("LINE Messaging API channel verified", bot=bot_info.get("basicId"))
        await super().initialize()

    async def cleanup(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        await super().cleanup()

    def validate_recipient(self, recipient: str) -> bool:
        """LINE user ids are ``U`` followed by 32 lowercase hex characters."""
        return isinstance(recipient, str) and LINE_USER_ID_PATTERN.match(recipient) is not None

    async def send(self, recipient: str, message: Dict[str, Any], **kwargs) -> Dict[str, Any]:
        """Push one message to ``recipient``."""
        if not self.validate_recipient(recipient):
            raise InvalidRecipientError(recipient, f"Malformed LINE user id: {recipient!r}")

        payload = {"to": recipient, "messages": [message]}
        response = await self._post("/v2/bot/message/push", payload)

        if response.status_code == 200:
            return {
                "success": True,
                "request_id": response.headers.get("x-line-request-id"),
                "provider": "line",
            }

        error_body = self._error_body(response)
        if self._is_invalid_recipient(response.status_code, error_body):
            raise InvalidRecipientError(
                recipient,
                error_body.get("message", f"LINE rejected recipient {recipient}"),
                details={"status_code": response.status_code, "body": error_body},
            )
        raise TransientDeliveryError(
            error_body.get("message", f"LINE push failed with status {response.status_code}"),
            details={"status_code": response.status_code, "body": error_body},
        )

    async def reply(self, reply_token: str, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Answer a webhook event through its reply token."""
        response = await self._post(
            "/v2/bot/message/reply",
            {"replyToken": reply_token, "messages": messages},
        )
        if response.status_code != 200:
            error_body = self._error_body(response)
            raise TransientDeliveryError(
                error_body.get("message", f"LINE reply failed with status {response.status_code}"),
                details={"status_code": response.status_code, "body": error_body},
            )
        return {"success": True, "provider": "line"}

    async def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        try:
            return await self.client.post(path, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            raise TransientDeliveryError(
                f"Timed out calling LINE {path}", details={"error_class": e.__class__.__name__}
            ) from e
        except httpx.HTTPError as e:
            raise TransientDeliveryError(
                f"Network error calling LINE {path}: {e}",
                details={"error_class": e.__class__.__name__},
            ) from e

    @staticmethod
    def _error_body(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {"message": response.text}
        return body if isinstance(body, dict) else {"message": str(body)}

    @staticmethod
    def _is_invalid_recipient(status_code: int, error_body: Dict[str, Any]) -> bool:
        # 404: the user does not exist for this channel. 400 naming the "to"
        # property: the id itself was refused.
        if status_code == 404:
            return True
        if status_code != 400:
            return False
        texts = [str(error_body.get("message", ""))]
        for detail in error_body.get("details") or []:
            if isinstance(detail, dict):
                texts.append(str(detail.get("property", "")))
                texts.append(str(detail.get("message", "")))
        return any(text == "to" or "'to'" in text for text in texts)
