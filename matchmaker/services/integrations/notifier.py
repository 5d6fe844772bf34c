"""Owner notifications over an outbound webhook.

Delivery (email, chat, ...) is handled by whatever listens on the webhook.
"""

import httpx
from loguru import logger

from matchmaker.domain.signaling.events import SignalEvent, SignalEventType


class OwnerNotifier:
    def __init__(
        self,
        webhook_url: str | None = None,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def notify(self, event: SignalEvent) -> bool:
        """Post an event about an owned code to the webhook.

        Returns:
            True if the webhook accepted the notification
        """
        if not self.webhook_url or not event.owner_account_ref:
            return False

        payload = {
            "event": event.type.value,
            "code": event.code,
            "accountRef": event.owner_account_ref,
            "isFixed": event.is_fixed,
            "at": event.at.isoformat(),
        }
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(self.webhook_url, json=payload, timeout=self.timeout)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Owner notification for {} failed: {}", event.code, e)
            return False

        logger.info("Notified owner {} of {} on {}", event.owner_account_ref, event.type, event.code)
        return True

    async def on_event(self, event: SignalEvent) -> None:
        """Event-bus subscriber: owners hear about fixed-code registrations only."""
        if event.type == SignalEventType.REGISTERED and event.is_fixed:
            await self.notify(event)
