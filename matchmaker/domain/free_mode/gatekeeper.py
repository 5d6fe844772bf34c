"""Free-mode admission control.

Unpaid callers get short trial sessions, tracked per hardware fingerprint.
After a trial ends the fingerprint cools down before the next one; paying
accounts bypass the gate entirely. The trial duration itself is enforced by
the endpoints tearing the connection down, not here: an open trial older than
the configured duration is simply treated as ended when next looked at.
"""

import math
from datetime import datetime, timedelta

from loguru import logger
from pymongo.errors import DuplicateKeyError

from matchmaker.schemas import FreeModeSession, TrialState
from matchmaker.services.integrations.accounts import AccountDirectory
from matchmaker.shared.domain.clock import Clock, ensure_utc, utc_now
from matchmaker.shared.storage.errors import storage_errors
from matchmaker.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from ..signaling.outcome import Outcome
from ..utils.idgen import new_trial_id
from .free_mode_models import FreeModeDecision

# (ended trials so far, multiplier of the base cooldown)
PROGRESSIVE_COOLDOWN_TIERS: list[tuple[int, int]] = [
    (50, 1),
    (100, 2),
    (200, 12),
]
PROGRESSIVE_COOLDOWN_MAX_MULTIPLIER = 24


def to_wait_minutes(wait_remaining_ms: int) -> int:
    return math.ceil(wait_remaining_ms / 60_000) if wait_remaining_ms > 0 else 0


def evaluate_cooldown(last_ended_at: datetime | None, now: datetime, cooldown: timedelta) -> int:
    """Milliseconds left before a new trial may start; 0 means eligible.

    Eligible again at exactly `last_ended_at + cooldown`.
    """
    if last_ended_at is None:
        return 0
    remaining = ensure_utc(last_ended_at) + cooldown - now
    if remaining <= timedelta(0):
        return 0
    return math.ceil(remaining / timedelta(milliseconds=1))


def progressive_cooldown(base: timedelta, ended_trials: int) -> timedelta:
    """Stretch the cooldown for fingerprints with a long trial history."""
    for limit, multiplier in PROGRESSIVE_COOLDOWN_TIERS:
        if ended_trials < limit:
            return base * multiplier
    return base * PROGRESSIVE_COOLDOWN_MAX_MULTIPLIER


class FreeModeGatekeeper:
    def __init__(
        self,
        accounts: AccountDirectory,
        trial_duration: timedelta,
        cooldown: timedelta,
        progressive: bool = False,
        clock: Clock = utc_now,
    ):
        self.accounts = accounts
        self.trial_duration = trial_duration
        self.cooldown = cooldown
        self.progressive = progressive
        self._clock = clock

    @staticmethod
    def _require_fingerprint(fingerprint: str | None) -> str:
        fingerprint = (fingerprint or "").strip()
        if not fingerprint:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_REQUEST,
                errmesg="Device fingerprint is required",
                status_code=HttpStatusCode.BAD_REQUEST,
            )
        return fingerprint

    async def is_paid(self, account_code: str | None) -> bool:
        return await self.accounts.is_paid_account(account_code)

    async def get_open_trial(self, fingerprint: str, now: datetime | None = None) -> FreeModeSession | None:
        """Return the fingerprint's open trial, closing it first if it has run its course."""
        now = now or self._clock()
        with storage_errors("get_open_trial"):
            trial = await FreeModeSession.find_one(
                FreeModeSession.device_fingerprint == fingerprint,
                FreeModeSession.is_open == True,  # noqa: E712
            )
            if trial is None:
                return None

            expires_at = ensure_utc(trial.started_at) + self.trial_duration
            if expires_at > now:
                return trial

            # Superseded: closes at the moment its duration ran out
            trial.ended_at = expires_at
            trial.is_open = False
            await trial.save()

        logger.info("Closed overdue free trial {} for {}", trial.trial_id, fingerprint)
        return None

    async def _cooldown_for(self, fingerprint: str) -> timedelta:
        if not self.progressive:
            return self.cooldown
        with storage_errors("count_trials"):
            ended = await FreeModeSession.find(
                FreeModeSession.device_fingerprint == fingerprint,
                FreeModeSession.is_open == False,  # noqa: E712
            ).count()
        return progressive_cooldown(self.cooldown, ended)

    async def evaluate(self, fingerprint: str, account_code: str | None = None) -> FreeModeDecision:
        fingerprint = self._require_fingerprint(fingerprint)

        if await self.is_paid(account_code):
            return FreeModeDecision(
                allowed=True,
                is_paid=True,
                state=TrialState.ELIGIBLE,
                message="Paid account",
            )

        return await self._evaluate_trial(fingerprint)

    async def _evaluate_trial(self, fingerprint: str) -> FreeModeDecision:
        now = self._clock()
        trial = await self.get_open_trial(fingerprint, now)
        if trial is not None:
            # Next trial possible once this one runs out and cools down
            wait_ms = evaluate_cooldown(
                ensure_utc(trial.started_at) + self.trial_duration,
                now,
                await self._cooldown_for(fingerprint),
            )
            return FreeModeDecision(
                allowed=False,
                is_paid=False,
                state=TrialState.ACTIVE_TRIAL,
                wait_remaining_ms=wait_ms,
                wait_minutes=to_wait_minutes(wait_ms),
                message="A free session is already active on this device",
            )

        with storage_errors("last_trial"):
            last = (
                await FreeModeSession.find(
                    FreeModeSession.device_fingerprint == fingerprint,
                    FreeModeSession.is_open == False,  # noqa: E712
                )
                .sort(-FreeModeSession.ended_at)
                .first_or_none()
            )

        wait_ms = evaluate_cooldown(
            last.ended_at if last else None,
            now,
            await self._cooldown_for(fingerprint),
        )
        if wait_ms > 0:
            wait_minutes = to_wait_minutes(wait_ms)
            logger.info("Free mode denied for {}: {} min cooldown left", fingerprint, wait_minutes)
            return FreeModeDecision(
                allowed=False,
                is_paid=False,
                state=TrialState.COOLING_DOWN,
                wait_remaining_ms=wait_ms,
                wait_minutes=wait_minutes,
                message=f"Free mode is available again in {wait_minutes} minute(s)",
            )

        return FreeModeDecision(
            allowed=True,
            is_paid=False,
            state=TrialState.ELIGIBLE,
            message="Free mode available",
        )

    async def start_trial(
        self,
        fingerprint: str,
        account_code: str | None = None,
    ) -> Outcome[FreeModeSession]:
        """Open a trial if the fingerprint is admitted.

        Paid accounts are admitted without a trial record (value is None).

        Raises:
            AppError: E_ALREADY_ACTIVE if an unpaid caller already has a trial open
        """
        fingerprint = self._require_fingerprint(fingerprint)
        now = self._clock()

        if await self.is_paid(account_code):
            return Outcome.success(None)

        if await self.get_open_trial(fingerprint, now) is not None:
            raise self._already_active(fingerprint)

        decision = await self._evaluate_trial(fingerprint)
        if not decision.allowed:
            return Outcome.rate_limited(decision.message, decision.wait_remaining_ms)

        trial = FreeModeSession(
            trial_id=new_trial_id(),
            device_fingerprint=fingerprint,
            account_code=account_code,
            started_at=now,
            ended_at=None,
            is_open=True,
        )
        with storage_errors("start_trial"):
            try:
                await trial.insert()
            except DuplicateKeyError as e:
                # Partial unique index: another request opened one first
                raise self._already_active(fingerprint) from e

        logger.info("Started free trial {} for {}", trial.trial_id, fingerprint)
        return Outcome.success(trial)

    async def end_trial(self, fingerprint: str) -> Outcome[FreeModeSession]:
        """Close the open trial. A no-op (NOT_FOUND) when none is open."""
        fingerprint = self._require_fingerprint(fingerprint)
        now = self._clock()

        trial = await self.get_open_trial(fingerprint, now)
        if trial is None:
            return Outcome.not_found(f"No open free session for {fingerprint}")

        trial.ended_at = now
        trial.is_open = False
        with storage_errors("end_trial"):
            await trial.save()

        logger.info("Ended free trial {} for {}", trial.trial_id, fingerprint)
        return Outcome.success(trial)

    @staticmethod
    def _already_active(fingerprint: str) -> AppError:
        return AppError(
            errcode=AppErrorCode.E_ALREADY_ACTIVE,
            errmesg=f"A free session is already active for {fingerprint}",
            status_code=HttpStatusCode.CONFLICT,
        )

    async def discard_trial(self, trial: FreeModeSession) -> None:
        """Delete a trial that never served a session, so it does not start a cooldown."""
        with storage_errors("discard_trial"):
            await trial.delete()
        logger.info("Discarded unused free trial {} for {}", trial.trial_id, trial.device_fingerprint)
