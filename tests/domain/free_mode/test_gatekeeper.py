"""Tests for the free-mode gatekeeper against MongoDB.

Require MONGO_URL_MATCHMAKER pointing at a reachable MongoDB.
"""

from datetime import timedelta

import pytest

from matchmaker.domain.free_mode.gatekeeper import FreeModeGatekeeper
from matchmaker.domain.signaling.outcome import OutcomeKind
from matchmaker.schemas import FreeModeSession, TrialState
from matchmaker.services.integrations.accounts import AccountDirectory
from matchmaker.utils.app_errors import AppError, AppErrorCode
from tests.fixtures.clock_fixtures import FakeClock

pytestmark = pytest.mark.usefixtures("clear_collections")

TRIAL = timedelta(minutes=30)
COOLDOWN = timedelta(minutes=10)


@pytest.fixture
def gatekeeper(clock: FakeClock) -> FreeModeGatekeeper:
    return FreeModeGatekeeper(
        accounts=AccountDirectory(paid_account_codes=("PAID1",)),
        trial_duration=TRIAL,
        cooldown=COOLDOWN,
        clock=clock,
    )


class TestTrialLifecycle:
    async def test_start_end_then_cool_down(self, gatekeeper: FreeModeGatekeeper, clock: FakeClock):
        started = await gatekeeper.start_trial("SN-1", "AcctX")
        assert started.ok
        assert started.value.trial_id.startswith("ft_")
        assert started.value.is_open is True

        clock.advance(minutes=5)
        ended = await gatekeeper.end_trial("SN-1")
        assert ended.ok
        assert ended.value.ended_at == clock()

        clock.advance(minutes=3)
        retry = await gatekeeper.start_trial("SN-1")
        assert retry.kind == OutcomeKind.RATE_LIMITED
        assert retry.wait_remaining_ms == 7 * 60_000

        decision = await gatekeeper.evaluate("SN-1")
        assert decision.allowed is False
        assert decision.state == TrialState.COOLING_DOWN
        assert decision.wait_minutes == 7

        clock.advance(minutes=7)
        assert (await gatekeeper.start_trial("SN-1")).ok

    async def test_fingerprints_are_independent(self, gatekeeper: FreeModeGatekeeper):
        await gatekeeper.start_trial("SN-1")
        await gatekeeper.end_trial("SN-1")

        assert (await gatekeeper.start_trial("SN-2")).ok

    async def test_second_start_while_open(self, gatekeeper: FreeModeGatekeeper):
        await gatekeeper.start_trial("SN-1")

        with pytest.raises(AppError) as exc_info:
            await gatekeeper.start_trial("SN-1")

        assert exc_info.value.errcode == AppErrorCode.E_ALREADY_ACTIVE
        assert exc_info.value.status_code == 409

    async def test_evaluate_reports_active_trial(self, gatekeeper: FreeModeGatekeeper, clock: FakeClock):
        await gatekeeper.start_trial("SN-1")
        clock.advance(minutes=20)

        decision = await gatekeeper.evaluate("SN-1")

        assert decision.allowed is False
        assert decision.state == TrialState.ACTIVE_TRIAL
        # 10 minutes of trial left, then the full cooldown
        assert decision.wait_remaining_ms == 20 * 60_000

    async def test_end_without_open_trial(self, gatekeeper: FreeModeGatekeeper):
        assert (await gatekeeper.end_trial("SN-1")).kind == OutcomeKind.NOT_FOUND

    async def test_fingerprint_required(self, gatekeeper: FreeModeGatekeeper):
        with pytest.raises(AppError) as exc_info:
            await gatekeeper.evaluate("  ")
        assert exc_info.value.errcode == AppErrorCode.E_INVALID_REQUEST


class TestOverdueTrials:
    async def test_overdue_trial_closed_at_its_deadline(self, gatekeeper: FreeModeGatekeeper, clock: FakeClock):
        started = await gatekeeper.start_trial("SN-1")
        deadline = started.value.started_at + TRIAL
        clock.advance(minutes=35)

        assert await gatekeeper.get_open_trial("SN-1") is None

        stored = await FreeModeSession.find_one(FreeModeSession.trial_id == started.value.trial_id)
        assert stored.is_open is False
        assert stored.ended_at == deadline

    async def test_cooldown_runs_from_deadline(self, gatekeeper: FreeModeGatekeeper, clock: FakeClock):
        await gatekeeper.start_trial("SN-1")
        clock.advance(minutes=35)

        retry = await gatekeeper.start_trial("SN-1")

        assert retry.kind == OutcomeKind.RATE_LIMITED
        assert retry.wait_remaining_ms == 5 * 60_000

    async def test_long_abandoned_trial_does_not_block(self, gatekeeper: FreeModeGatekeeper, clock: FakeClock):
        await gatekeeper.start_trial("SN-1")
        clock.advance(hours=2)

        assert (await gatekeeper.start_trial("SN-1")).ok


class TestPaidAccounts:
    async def test_paid_account_bypasses_gate(self, gatekeeper: FreeModeGatekeeper):
        started = await gatekeeper.start_trial("SN-1", "paid1")

        assert started.ok
        assert started.value is None
        assert await FreeModeSession.count() == 0

    async def test_paid_account_allowed_during_cooldown(self, gatekeeper: FreeModeGatekeeper):
        await gatekeeper.start_trial("SN-1")
        await gatekeeper.end_trial("SN-1")

        decision = await gatekeeper.evaluate("SN-1", "PAID1")

        assert decision.allowed is True
        assert decision.is_paid is True

    async def test_paid_account_not_blocked_by_open_trial(self, gatekeeper: FreeModeGatekeeper):
        await gatekeeper.start_trial("SN-1")

        started = await gatekeeper.start_trial("SN-1", "PAID1")

        assert started.ok
        assert started.value is None
        assert (await gatekeeper.evaluate("SN-1", "PAID1")).is_paid is True


class TestDiscard:
    async def test_discarded_trial_leaves_no_cooldown(self, gatekeeper: FreeModeGatekeeper):
        started = await gatekeeper.start_trial("SN-1")

        await gatekeeper.discard_trial(started.value)

        assert await FreeModeSession.count() == 0
        assert (await gatekeeper.evaluate("SN-1")).allowed is True


class TestProgressiveCooldown:
    async def test_progressive_flag_uses_history(self, clock: FakeClock):
        gatekeeper = FreeModeGatekeeper(
            accounts=AccountDirectory(),
            trial_duration=TRIAL,
            cooldown=COOLDOWN,
            progressive=True,
            clock=clock,
        )
        await gatekeeper.start_trial("SN-1")
        await gatekeeper.end_trial("SN-1")

        decision = await gatekeeper.evaluate("SN-1")

        # Fewer than 50 ended trials: base cooldown
        assert decision.wait_remaining_ms == 10 * 60_000
