"""Shared wiring for signaling operations."""

from datetime import datetime
from typing import Any

from loguru import logger

from matchmaker.app_config import AppEnvironConfig
from matchmaker.schemas import Handshake, SessionDescription
from matchmaker.shared.domain.clock import Clock, utc_now
from matchmaker.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from ..devices.device_registry import DeviceRegistry
from ..free_mode.gatekeeper import FreeModeGatekeeper
from .code_generator import CodeGenerator, normalize_code
from .events import EventBus, SignalEvent, SignalEventType
from .session_store import SessionRecord, SessionStore


class SignalingContext:
    """Collaborators shared by every operations class."""

    def __init__(
        self,
        config: AppEnvironConfig,
        store: SessionStore,
        devices: DeviceRegistry,
        generator: CodeGenerator,
        gatekeeper: FreeModeGatekeeper,
        events: EventBus,
        clock: Clock = utc_now,
    ):
        self.config = config
        self.store = store
        self.devices = devices
        self.generator = generator
        self.gatekeeper = gatekeeper
        self.events = events
        self.clock = clock


class BaseOperations:
    """Base class with shared signaling helpers."""

    def __init__(self, ctx: SignalingContext):
        self.ctx = ctx
        self.config = ctx.config
        self.store = ctx.store
        self.devices = ctx.devices
        self.generator = ctx.generator
        self.gatekeeper = ctx.gatekeeper
        self.events = ctx.events
        self.clock = ctx.clock

    @staticmethod
    def _require_code(raw: str | None) -> str:
        code = normalize_code(raw)
        if not code:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_REQUEST,
                errmesg="Missing code",
                status_code=HttpStatusCode.BAD_REQUEST,
            )
        return code

    @staticmethod
    def _require_sdp(description: SessionDescription | None, field: str) -> SessionDescription:
        if description is None or not description.sdp:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_REQUEST,
                errmesg=f"Missing {field}.sdp",
                status_code=HttpStatusCode.BAD_REQUEST,
            )
        return description

    def _build_record(
        self,
        code: str,
        offer: SessionDescription,
        ice_candidates: list[Any],
        ice_servers: list[Any],
        owner_account_ref: str | None,
        is_fixed: bool,
        now: datetime | None = None,
    ) -> SessionRecord:
        now = now or self.clock()
        return SessionRecord(
            code=code,
            offer=offer,
            ice_candidates_host=list(ice_candidates),
            ice_servers_host=list(ice_servers),
            owner_account_ref=owner_account_ref,
            is_fixed=is_fixed,
            created_at=now,
            last_access_at=now,
        )

    def _record_from_handshake(self, code: str, handshake: Handshake, owner_account_ref: str) -> SessionRecord:
        return self._build_record(
            code=code,
            offer=handshake.offer,
            ice_candidates=handshake.ice_candidates,
            ice_servers=handshake.ice_servers,
            owner_account_ref=owner_account_ref,
            is_fixed=True,
        )

    async def _publish(
        self,
        event_type: SignalEventType,
        code: str,
        *,
        is_fixed: bool = False,
        owner_account_ref: str | None = None,
    ) -> None:
        event = SignalEvent(
            type=event_type,
            code=code,
            is_fixed=is_fixed,
            owner_account_ref=owner_account_ref,
            at=self.clock(),
        )
        await self.events.publish(event)

    @staticmethod
    def _code_in_use(code: str) -> AppError:
        logger.warning("Code {} is already in use", code)
        return AppError(
            errcode=AppErrorCode.E_CODE_IN_USE,
            errmesg=f"Code {code} is already in use",
            status_code=HttpStatusCode.CONFLICT,
        )
