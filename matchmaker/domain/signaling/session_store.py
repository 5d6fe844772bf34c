"""In-memory session store for offer/answer relay."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from matchmaker.schemas import SessionDescription
from matchmaker.shared.domain.clock import Clock, utc_now

from .code_generator import IsTaken, normalize_code


class SessionRecord(BaseModel):
    """Handshake state for one access code."""

    code: str
    offer: SessionDescription
    ice_candidates_host: list[Any] = Field(default_factory=list)
    ice_servers_host: list[Any] = Field(default_factory=list)

    answer: SessionDescription | None = None
    ice_candidates_viewer: list[Any] = Field(default_factory=list)

    owner_account_ref: str | None = None
    # Mirrors a device registry entry; never TTL-evicted
    is_fixed: bool = False

    created_at: datetime
    last_access_at: datetime

    @property
    def has_answer(self) -> bool:
        return self.answer is not None


class SessionStore:
    """Code -> SessionRecord map guarded by a single mutation lock.

    Every read hands out a deep copy, so callers never see a record while it
    is being written and cannot mutate the stored one behind the lock.
    Expired dynamic records stay invisible to lookups until the sweeper
    evicts them.
    """

    def __init__(self, ttl: timedelta, clock: Clock = utc_now):
        self.ttl = ttl
        self._clock = clock
        self._records: dict[str, SessionRecord] = {}
        self._lock = asyncio.Lock()

    def _is_expired(self, record: SessionRecord, now: datetime) -> bool:
        return not record.is_fixed and now - record.last_access_at > self.ttl

    def _live(self, code: str, now: datetime) -> SessionRecord | None:
        record = self._records.get(code)
        if record is None or self._is_expired(record, now):
            return None
        return record

    async def _is_live_unlocked(self, code: str) -> bool:
        return self._live(normalize_code(code), self._clock()) is not None

    async def get(self, code: str) -> SessionRecord | None:
        """Return a live record and refresh its last access time."""
        code = normalize_code(code)
        async with self._lock:
            now = self._clock()
            record = self._live(code, now)
            if record is None:
                return None
            record.last_access_at = now
            return record.model_copy(deep=True)

    async def peek(self, code: str) -> SessionRecord | None:
        """Return a live record without touching it."""
        code = normalize_code(code)
        async with self._lock:
            record = self._live(code, self._clock())
            return record.model_copy(deep=True) if record else None

    async def claim(
        self,
        record: SessionRecord,
        may_replace: Callable[[SessionRecord], bool],
    ) -> bool:
        """Insert a record unless a live one holds the code and may not be replaced.

        The check and the insert happen under the same lock acquisition.

        Returns:
            True if the record was stored, False if the code is held
        """
        record = record.model_copy(deep=True, update={"code": normalize_code(record.code)})
        async with self._lock:
            existing = self._live(record.code, self._clock())
            if existing is not None and not may_replace(existing):
                return False
            self._records[record.code] = record
            return True

    async def insert_generated(
        self,
        generate: Callable[[IsTaken], Awaitable[str]],
        build: Callable[[str], SessionRecord],
    ) -> SessionRecord:
        """Pick a free code and insert the record built for it atomically.

        Args:
            generate: Receives a lock-free liveness check to test candidates with
            build: Builds the record for the chosen code
        """
        async with self._lock:
            code = normalize_code(await generate(self._is_live_unlocked))
            record = build(code)
            self._records[code] = record
            return record.model_copy(deep=True)

    async def attach_answer(
        self,
        code: str,
        answer: SessionDescription,
        ice_candidates: list[Any],
    ) -> SessionRecord | None:
        """Set the viewer's answer; a later answer replaces an earlier one."""
        code = normalize_code(code)
        async with self._lock:
            now = self._clock()
            record = self._live(code, now)
            if record is None:
                return None
            if record.answer is not None:
                logger.info("Replacing existing answer for code {}", code)
            record.answer = answer.model_copy()
            record.ice_candidates_viewer = list(ice_candidates)
            record.last_access_at = now
            return record.model_copy(deep=True)

    async def touch(self, code: str) -> bool:
        code = normalize_code(code)
        async with self._lock:
            now = self._clock()
            record = self._live(code, now)
            if record is None:
                return False
            record.last_access_at = now
            return True

    async def delete(self, code: str) -> SessionRecord | None:
        """Remove a record if present. Deleting an unknown code is a no-op."""
        code = normalize_code(code)
        async with self._lock:
            return self._records.pop(code, None)

    async def evict_expired(self, now: datetime | None = None) -> list[str]:
        """Drop every dynamic record idle for longer than the TTL."""
        async with self._lock:
            now = now or self._clock()
            expired = [code for code, record in self._records.items() if self._is_expired(record, now)]
            for code in expired:
                del self._records[code]
        return expired

    async def is_live(self, code: str) -> bool:
        async with self._lock:
            return await self._is_live_unlocked(code)

    async def snapshot(self) -> list[SessionRecord]:
        async with self._lock:
            now = self._clock()
            return [
                record.model_copy(deep=True)
                for record in self._records.values()
                if not self._is_expired(record, now)
            ]

    async def count(self) -> int:
        async with self._lock:
            now = self._clock()
            return sum(1 for record in self._records.values() if not self._is_expired(record, now))
