"""Liveness sweeper.

Two independent periodic duties:
- evict dynamic sessions idle past the TTL (one `expired` event each)
- mark fixed devices offline once their heartbeats stop

Both compare timestamps against "now" on every pass, so a late or skipped
pass only delays the effect; it never loses it.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import timedelta

from loguru import logger

from matchmaker.domain.signaling.signaling_domain import MatchmakerService


class LivenessSweeper:
    """Runs the session-expiry and device-offline loops as asyncio tasks."""

    ERROR_BACKOFF = 5.0  # seconds before retrying after a failed pass

    def __init__(
        self,
        service: MatchmakerService,
        cleanup_interval: timedelta,
        device_sweep_interval: timedelta,
    ) -> None:
        """Initialize the sweeper.

        Args:
            service: Matchmaker service whose sessions and devices are swept
            cleanup_interval: Time between dynamic-session expiry passes
            device_sweep_interval: Time between device offline passes
        """
        self._service = service
        self._cleanup_interval = cleanup_interval.total_seconds()
        self._device_sweep_interval = device_sweep_interval.total_seconds()
        self._running = False
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return self._running

    async def expire_sessions_once(self) -> list[str]:
        return await self._service.expire_sessions()

    async def mark_devices_offline_once(self) -> int:
        return await self._service.mark_stale_devices_offline()

    async def _loop(self, name: str, interval: float, duty: Callable[[], Awaitable[object]]) -> None:
        logger.info("Starting {} loop (every {:.1f}s)", name, interval)
        while self._running:
            try:
                await asyncio.sleep(interval)
                await duty()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("Error in {} loop: {}", name, exc)
                await asyncio.sleep(min(self.ERROR_BACKOFF, interval))
        logger.info("Stopped {} loop", name)

    def start(self) -> None:
        """Spawn both loops on the running event loop."""
        if self._running:
            return
        self._running = True
        self._tasks = [
            asyncio.create_task(
                self._loop("session expiry", self._cleanup_interval, self.expire_sessions_once),
                name="session-expiry",
            ),
            asyncio.create_task(
                self._loop("device offline", self._device_sweep_interval, self.mark_devices_offline_once),
                name="device-offline",
            ),
        ]

    async def stop(self) -> None:
        """Stop both loops and wait for them to finish."""
        self._running = False
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
