"""
WhatsApp Gateway Client - outbound text delivery through Z-API.

The typing delay is advisory: the gateway shows "typing..." for that many
seconds before delivering. Conversational replies use a random delay inside
the configured window, system messages (briefings, admin replies) use 0.
"""
import random
from typing import Optional

import httpx

from brokerbot.core.config import Settings, get_settings
from brokerbot.core.logging import logger


class DeliveryError(Exception):
    """Raised when the gateway did not accept an outbound message."""

    def __init__(self, phone: str, reason: str):
        self.phone = phone
        self.reason = reason
        super().__init__(f"Delivery to {phone} failed: {reason}")


def compute_delay_seconds(app_settings: Optional[Settings] = None) -> int:
    """Random human-like typing delay, in whole seconds."""
    app_settings = app_settings or get_settings()
    return random.randint(
        app_settings.HUMAN_DELAY_MIN_SECONDS,
        app_settings.HUMAN_DELAY_MAX_SECONDS,
    )


class WhatsAppClient:
    """Sends text messages through the Z-API send-text endpoint."""

    def __init__(
        self,
        app_settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = app_settings or get_settings()
        self._transport = transport

    @property
    def send_text_url(self) -> str:
        base_url = self.settings.ZAPI_BASE_URL.rstrip("/")
        return (
            f"{base_url}/instances/{self.settings.ZAPI_INSTANCE_ID}"
            f"/token/{self.settings.ZAPI_INSTANCE_TOKEN}/send-text"
        )

    async def send_text(self, phone: str, message: str, delay_seconds: int = 0) -> None:
        """
        Send a plain text message.

        Args:
            phone: Digits-only E.164 phone, e.g. "5511999999999"
            message: Text body (WhatsApp markup allowed)
            delay_seconds: Typing delay shown before delivery

        Raises:
            DeliveryError: on timeout, network failure or non-2xx answer
        """
        payload = {"phone": phone, "message": message}
        if delay_seconds > 0:
            payload["delayTyping"] = delay_seconds

        headers = {"Client-Token": self.settings.ZAPI_CLIENT_TOKEN}

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.ZAPI_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                response = await client.post(self.send_text_url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(f"Gateway rejected message to {phone}: HTTP {exc.response.status_code}")
            raise DeliveryError(phone, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error(f"Gateway request to {phone} failed: {exc}")
            raise DeliveryError(phone, str(exc) or exc.__class__.__name__) from exc

        logger.info(f"Message sent to {phone} (delay={delay_seconds}s, {len(message)} chars)")


# Singleton client
_whatsapp_client: Optional[WhatsAppClient] = None


def get_whatsapp_client() -> WhatsAppClient:
    """Get or create the shared gateway client."""
    global _whatsapp_client
    if _whatsapp_client is None:
        _whatsapp_client = WhatsAppClient()
    return _whatsapp_client
