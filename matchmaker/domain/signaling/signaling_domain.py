"""Matchmaker domain service - the operation set the web layer calls."""

from datetime import datetime
from typing import Any

from matchmaker.app_config import AppEnvironConfig
from matchmaker.schemas import SessionDescription
from matchmaker.services.integrations.accounts import AccountDirectory
from matchmaker.shared.domain.clock import Clock, utc_now

from ..devices.device_models import DeviceRegistration, DeviceResponse
from ..devices.device_registry import DeviceRegistry
from ..free_mode.free_mode_models import FreeModeDecision
from ..free_mode.gatekeeper import FreeModeGatekeeper
from ._base import SignalingContext
from ._codes import CodeOperations
from ._presence import PresenceOperations
from ._register import RegisterOperations
from ._relay import RelayOperations
from .code_generator import CodeGenerator
from .events import EventBus
from .outcome import Outcome
from .session_store import SessionStore
from .signaling_models import (
    AnswerPayload,
    CodeAvailability,
    HealthStatus,
    RegisterParams,
    RegisterResult,
    ResolvedOffer,
    SessionSummary,
)


class MatchmakerService:
    """Composes the session store, device registry, code generator and gatekeeper."""

    def __init__(self, ctx: SignalingContext):
        self.ctx = ctx
        self._register = RegisterOperations(ctx)
        self._relay = RelayOperations(ctx)
        self._presence = PresenceOperations(ctx)
        self._codes = CodeOperations(ctx)

    @property
    def events(self) -> EventBus:
        return self.ctx.events

    @property
    def devices(self) -> DeviceRegistry:
        return self.ctx.devices

    @property
    def gatekeeper(self) -> FreeModeGatekeeper:
        return self.ctx.gatekeeper

    # ==================== RELAY ====================

    async def register(self, params: RegisterParams) -> Outcome[RegisterResult]:
        """Register an offer under a dynamic or fixed code.

        Returns RATE_LIMITED for free-mode callers in cooldown.
        Raises AppError on invalid input or E_CODE_IN_USE.
        """
        return await self._register.register(params)

    async def resolve(self, code: str) -> Outcome[ResolvedOffer]:
        """Return the offer for a code (NOT_FOUND / NOT_READY otherwise)."""
        return await self._relay.resolve(code)

    async def submit_answer(
        self,
        code: str,
        answer: SessionDescription | None,
        ice_candidates: list[Any] | None = None,
    ) -> Outcome[None]:
        """Attach a viewer answer (last write wins)."""
        return await self._relay.submit_answer(code, answer, ice_candidates)

    async def fetch_answer(self, code: str) -> Outcome[AnswerPayload]:
        """Return the answer once posted; NOT_READY until then."""
        return await self._relay.fetch_answer(code)

    async def delete(self, code: str) -> bool:
        """Idempotent removal from the session store."""
        return await self._relay.delete(code)

    # ==================== PRESENCE ====================

    async def heartbeat(self, code: str) -> Outcome[None]:
        return await self._presence.heartbeat(code)

    async def disconnect(self, code: str) -> Outcome[None]:
        return await self._presence.disconnect(code)

    async def expire_sessions(self, now: datetime | None = None) -> list[str]:
        return await self._presence.expire_sessions(now)

    async def mark_stale_devices_offline(self, now: datetime | None = None) -> int:
        return await self._presence.mark_stale_devices_offline(now)

    # ==================== CODES ====================

    async def generate_code(self, length: int | None = None) -> str:
        return await self._codes.generate_code(length)

    async def check_code(self, code: str) -> CodeAvailability:
        return await self._codes.check_code(code)

    async def live_codes(self) -> list[str]:
        return await self._codes.live_codes()

    async def list_sessions(self) -> list[SessionSummary]:
        return await self._codes.list_sessions()

    async def health(self) -> HealthStatus:
        return await self._codes.health()

    # ==================== FREE MODE ====================

    async def validate_account(self, disk_serial: str, company_code: str | None = None) -> FreeModeDecision:
        return await self.ctx.gatekeeper.evaluate(disk_serial, company_code)

    async def end_free_session(self, disk_serial: str) -> Outcome:
        return await self.ctx.gatekeeper.end_trial(disk_serial)

    # ==================== DEVICES ====================

    async def preregister_device(
        self,
        code: str,
        account_ref: str | None,
        display_name: str | None = None,
    ) -> DeviceRegistration:
        return await self._presence.preregister_device(code, account_ref, display_name)

    async def get_device(self, code: str) -> DeviceResponse | None:
        return await self._presence.get_device(code)

    async def remove_device(self, code: str) -> bool:
        return await self._presence.remove_device(code)


def create_matchmaker_service(
    config: AppEnvironConfig,
    accounts: AccountDirectory | None = None,
    events: EventBus | None = None,
    clock: Clock = utc_now,
) -> MatchmakerService:
    """Wire the full service graph from one settings object."""
    accounts = accounts or AccountDirectory(
        base_url=config.ACCOUNT_SERVICE_URL,
        api_key=config.ACCOUNT_SERVICE_API_KEY,
        paid_account_codes=config.PAID_ACCOUNT_CODES,
    )
    devices = DeviceRegistry(clock=clock)
    ctx = SignalingContext(
        config=config,
        store=SessionStore(ttl=config.session_ttl, clock=clock),
        devices=devices,
        generator=CodeGenerator(
            default_length=config.CODE_LENGTH,
            max_attempts=config.CODE_MAX_ATTEMPTS,
            is_device_code=devices.exists,
        ),
        gatekeeper=FreeModeGatekeeper(
            accounts=accounts,
            trial_duration=config.free_mode_trial_duration,
            cooldown=config.free_mode_cooldown,
            progressive=config.FREE_MODE_PROGRESSIVE_COOLDOWN,
            clock=clock,
        ),
        events=events or EventBus(),
        clock=clock,
    )
    return MatchmakerService(ctx)
