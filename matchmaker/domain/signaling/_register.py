"""Host registration."""

from dataclasses import dataclass

from loguru import logger

from matchmaker.schemas import FreeModeSession, Handshake, SessionDescription
from matchmaker.shared.domain.clock import ensure_utc
from matchmaker.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from ._base import BaseOperations
from .code_generator import normalize_code, validate_requested_code
from .events import SignalEventType
from .outcome import Outcome
from .session_store import SessionRecord
from .signaling_models import AccessMode, RegisterParams, RegisterResult


@dataclass
class Admission:
    mode: AccessMode | None = None
    max_duration_ms: int | None = None
    # Trial opened by this request; rolled back if registration fails
    opened_trial: FreeModeSession | None = None


class RegisterOperations(BaseOperations):
    """Register offers under dynamic or fixed codes."""

    async def register(self, params: RegisterParams) -> Outcome[RegisterResult]:
        """Register a host's offer.

        Dynamic codes live in the session store only and expire after the
        TTL of inactivity. Fixed codes (is_service) are claimed in the device
        registry for the caller's account and cached in the store without TTL.

        Returns RATE_LIMITED when a free-mode caller is cooling down.
        Raises AppError for invalid input and E_CODE_IN_USE conflicts.
        """
        offer = self._require_sdp(params.offer, "offer")
        account_ref = params.account_ref
        requested = normalize_code(params.code) or None
        if requested:
            validate_requested_code(requested)

        if params.is_service and not account_ref:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_REQUEST,
                errmesg="Fixed code registration requires clientId or companyCode",
                status_code=HttpStatusCode.BAD_REQUEST,
            )

        admission = await self._admit(params)
        if not admission.ok:
            return Outcome.rate_limited(admission.message or "Rate limited", admission.wait_remaining_ms or 0)
        admitted = admission.value or Admission()

        try:
            if params.is_service:
                result = await self._register_fixed(params, offer, account_ref, requested)  # type: ignore[arg-type]
            else:
                result = await self._register_dynamic(params, offer, account_ref, requested)
        except AppError:
            if admitted.opened_trial is not None:
                await self.gatekeeper.discard_trial(admitted.opened_trial)
            raise

        result.mode = admitted.mode
        result.max_duration_ms = admitted.max_duration_ms
        await self._publish(
            SignalEventType.REGISTERED,
            result.code,
            is_fixed=result.is_fixed_code,
            owner_account_ref=account_ref,
        )
        return Outcome.success(result)

    async def _admit(self, params: RegisterParams) -> Outcome[Admission]:
        """Run the free-mode gate for callers that present a hardware fingerprint."""
        fingerprint = (params.disk_serial or "").strip()
        if not fingerprint:
            return Outcome.success(Admission())

        # Paid accounts bypass the gate whatever the fingerprint history
        if await self.gatekeeper.is_paid(params.company_code):
            return Outcome.success(Admission(mode="paid"))

        now = self.clock()
        trial = await self.gatekeeper.get_open_trial(fingerprint, now)
        if trial is not None:
            # Host re-registering inside its running trial
            elapsed = now - ensure_utc(trial.started_at)
            remaining_ms = max(0, int((self.gatekeeper.trial_duration - elapsed).total_seconds() * 1000))
            return Outcome.success(Admission(mode="free", max_duration_ms=remaining_ms))

        started = await self.gatekeeper.start_trial(fingerprint, params.company_code)
        if not started.ok:
            logger.info("Registration from {} rate limited: {}", fingerprint, started.message)
            return Outcome.rate_limited(started.message or "Rate limited", started.wait_remaining_ms or 0)
        if started.value is None:
            return Outcome.success(Admission(mode="paid"))

        return Outcome.success(
            Admission(
                mode="free",
                max_duration_ms=self.config.FREE_MODE_TRIAL_DURATION_MS,
                opened_trial=started.value,
            )
        )

    async def _register_fixed(
        self,
        params: RegisterParams,
        offer: SessionDescription,
        account_ref: str,
        requested: str | None,
    ) -> RegisterResult:
        if requested:
            code = requested
            cached = await self.store.peek(code)
            if (
                cached is not None
                and not cached.is_fixed
                and cached.owner_account_ref not in (None, account_ref)
            ):
                raise self._code_in_use(code)
        else:
            code = await self.generator.generate(is_live_session=self.store.is_live)

        handshake = Handshake(
            offer=offer,
            ice_candidates=params.ice_candidates,
            ice_servers=params.ice_servers,
        )
        upserted = await self.devices.upsert(
            code,
            account_ref,
            display_name=params.device_name,
            ip_address=params.ip_address,
            handshake=handshake,
        )

        record = self._build_record(
            code=code,
            offer=offer,
            ice_candidates=params.ice_candidates,
            ice_servers=params.ice_servers,
            owner_account_ref=account_ref,
            is_fixed=True,
        )
        # A dynamic host may have claimed the code while the registry was updated
        claimed = await self.store.claim(
            record,
            may_replace=lambda existing: (
                existing.is_fixed or existing.owner_account_ref in (None, account_ref)
            ),
        )
        if not claimed:
            if upserted.created:
                await self.devices.remove(code)
            raise self._code_in_use(code)

        logger.info(
            "Registered fixed code {} for account {} ({})",
            code,
            account_ref,
            "new" if upserted.created else "updated",
        )
        return RegisterResult(code=code, is_fixed_code=True, created=upserted.created, expires_in_millis=None)

    async def _register_dynamic(
        self,
        params: RegisterParams,
        offer: SessionDescription,
        account_ref: str | None,
        requested: str | None,
    ) -> RegisterResult:
        def build(code: str) -> SessionRecord:
            return self._build_record(
                code=code,
                offer=offer,
                ice_candidates=params.ice_candidates,
                ice_servers=params.ice_servers,
                owner_account_ref=account_ref,
                is_fixed=False,
            )

        if requested:
            # Device codes are reserved for their owners' fixed registrations
            if await self.devices.exists(requested):
                raise self._code_in_use(requested)

            claimed = await self.store.claim(
                build(requested),
                may_replace=lambda existing: (
                    not existing.is_fixed and existing.owner_account_ref in (None, account_ref)
                ),
            )
            if not claimed:
                raise self._code_in_use(requested)
            code = requested
        else:

            async def generate(is_live_session) -> str:
                return await self.generator.generate(is_live_session=is_live_session)

            record = await self.store.insert_generated(generate, build)
            code = record.code

        logger.info("Registered dynamic code {}", code)
        return RegisterResult(
            code=code,
            is_fixed_code=False,
            created=True,
            expires_in_millis=self.config.SESSION_TTL_MS,
        )
