"""Liveness of fixed devices and expiry of dynamic sessions."""

from datetime import datetime

from loguru import logger

from ..devices.device_models import DeviceRegistration, DeviceResponse
from ._base import BaseOperations
from .events import SignalEventType
from .outcome import Outcome


class PresenceOperations(BaseOperations):
    async def heartbeat(self, code: str) -> Outcome[None]:
        """Refresh a device's last_seen_at and keep its cached record warm.

        NOT_FOUND only when neither a device nor a live session holds the code.
        """
        code = self._require_code(code)

        device_outcome = await self.devices.heartbeat(code)
        touched = await self.store.touch(code)
        if not device_outcome.ok and not touched:
            logger.debug("Heartbeat for unknown code {}", code)
            return Outcome.not_found(f"Code {code} not found")
        return Outcome.success(None)

    async def disconnect(self, code: str) -> Outcome[None]:
        """Graceful shutdown: device goes offline and its cached offer is dropped.

        Purging the record keeps a stale offer from being served between the
        disconnect and the next registration.
        """
        code = self._require_code(code)

        device_outcome = await self.devices.disconnect(code)
        removed = await self.store.delete(code)
        if removed is not None:
            await self._publish(
                SignalEventType.REMOVED,
                code,
                is_fixed=removed.is_fixed,
                owner_account_ref=removed.owner_account_ref,
            )

        if not device_outcome.ok and removed is None:
            logger.debug("Disconnect for unknown code {}", code)
            return Outcome.not_found(f"Code {code} not found")
        return Outcome.success(None)

    async def expire_sessions(self, now: datetime | None = None) -> list[str]:
        """Evict dynamic sessions idle past the TTL, one `expired` event each."""
        expired = await self.store.evict_expired(now)
        for code in expired:
            await self._publish(SignalEventType.EXPIRED, code)
        if expired:
            logger.info("Expired {} session(s): {}", len(expired), ", ".join(expired))
        return expired

    async def mark_stale_devices_offline(self, now: datetime | None = None) -> int:
        return await self.devices.mark_offline_if_stale(
            now or self.clock(),
            self.config.device_offline_threshold,
        )

    # ==================== ADMIN ====================

    async def preregister_device(
        self,
        code: str,
        account_ref: str | None,
        display_name: str | None = None,
    ) -> DeviceRegistration:
        """Claim a fixed code for an account before the host first connects."""
        code = self._require_code(code)
        result = await self.devices.upsert(code, account_ref or "", display_name=display_name)
        return DeviceRegistration(created=result.created, device=DeviceResponse.from_document(result.device))

    async def get_device(self, code: str) -> DeviceResponse | None:
        device = await self.devices.get(self._require_code(code))
        return DeviceResponse.from_document(device) if device else None

    async def remove_device(self, code: str) -> bool:
        code = self._require_code(code)

        removed = await self.devices.remove(code)
        cached = await self.store.delete(code)
        if cached is not None:
            await self._publish(
                SignalEventType.REMOVED,
                code,
                is_fixed=cached.is_fixed,
                owner_account_ref=cached.owner_account_ref,
            )
        return removed
