"""Code issuance, availability and service introspection."""

import time

from ._base import BaseOperations
from .signaling_models import CodeAvailability, HealthStatus, SessionSummary


class CodeOperations(BaseOperations):
    def __init__(self, ctx):
        super().__init__(ctx)
        self._started = time.monotonic()

    async def generate_code(self, length: int | None = None) -> str:
        """A code that is currently free in both stores. Nothing is reserved."""
        return await self.generator.generate(length, is_live_session=self.store.is_live)

    async def check_code(self, code: str) -> CodeAvailability:
        code = self._require_code(code)

        device = await self.devices.get(code)
        if device is not None:
            return CodeAvailability(code=code, available=False, owner=device.account_ref)

        record = await self.store.peek(code)
        if record is not None:
            return CodeAvailability(code=code, available=False, owner=record.owner_account_ref)

        return CodeAvailability(code=code, available=True, owner=None)

    async def live_codes(self) -> list[str]:
        return [record.code for record in await self.store.snapshot()]

    async def list_sessions(self) -> list[SessionSummary]:
        records = sorted(await self.store.snapshot(), key=lambda r: r.created_at)
        return [
            SessionSummary(
                code=record.code,
                has_offer=bool(record.offer.sdp),
                has_answer=record.has_answer,
                is_fixed=record.is_fixed,
                created_at=record.created_at,
                last_access_at=record.last_access_at,
                candidate_count=len(record.ice_candidates_host),
            )
            for record in records
        ]

    async def health(self) -> HealthStatus:
        return HealthStatus(
            status="ok",
            active_sessions=await self.store.count(),
            ttl_ms=self.config.SESSION_TTL_MS,
            uptime=round(time.monotonic() - self._started, 3),
        )
