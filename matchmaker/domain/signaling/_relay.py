"""Offer/answer relay between a host and a viewer."""

from typing import Any

from loguru import logger

from matchmaker.schemas import SessionDescription

from ._base import BaseOperations
from .code_generator import normalize_code
from .events import SignalEventType
from .outcome import Outcome
from .signaling_models import AnswerPayload, ResolvedOffer


class RelayOperations(BaseOperations):
    """Resolve, answer and teardown of a session slot."""

    async def resolve(self, code: str) -> Outcome[ResolvedOffer]:
        """Look a code up in the session store, then in the device registry.

        A fixed device that is online but missing from the store (evicted, or
        the process restarted) is rehydrated from its last published handshake
        and written back to the store.
        """
        code = self._require_code(code)

        record = await self.store.get(code)
        if record is None:
            device = await self.devices.get_online(code)
            if device is None:
                return Outcome.not_found(f"Code {code} not found")
            if device.last_handshake is None:
                return Outcome.not_ready(f"Device {code} has not published an offer yet")

            rehydrated = self._record_from_handshake(code, device.last_handshake, device.account_ref)
            if await self.store.claim(rehydrated, may_replace=lambda existing: False):
                record = rehydrated
                logger.info("Rehydrated session {} from device registry", code)
            else:
                # Registered while the registry was being read; serve the newer record
                record = await self.store.get(code) or rehydrated

        await self._publish(
            SignalEventType.RESOLVED,
            code,
            is_fixed=record.is_fixed,
            owner_account_ref=record.owner_account_ref,
        )
        return Outcome.success(
            ResolvedOffer(
                code=record.code,
                offer=record.offer,
                ice_candidates=record.ice_candidates_host,
                ice_servers=record.ice_servers_host,
            )
        )

    async def submit_answer(
        self,
        code: str,
        answer: SessionDescription | None,
        ice_candidates: list[Any] | None = None,
    ) -> Outcome[None]:
        """Attach a viewer's answer. A second answer replaces the first."""
        code = self._require_code(code)
        answer = self._require_sdp(answer, "answer")

        record = await self.store.attach_answer(code, answer, ice_candidates or [])
        if record is None:
            return Outcome.not_found(f"Code {code} not found")

        await self._publish(
            SignalEventType.ANSWERED,
            code,
            is_fixed=record.is_fixed,
            owner_account_ref=record.owner_account_ref,
        )
        return Outcome.success(None)

    async def fetch_answer(self, code: str) -> Outcome[AnswerPayload]:
        code = self._require_code(code)

        record = await self.store.get(code)
        if record is None:
            return Outcome.not_found(f"Code {code} not found")
        if record.answer is None:
            return Outcome.not_ready("No answer yet")

        return Outcome.success(
            AnswerPayload(answer=record.answer, ice_candidates=record.ice_candidates_viewer)
        )

    async def delete(self, code: str) -> bool:
        """Drop the session slot; the device registry is left untouched.

        Idempotent: unknown and blank codes report False.
        """
        code = normalize_code(code)
        if not code:
            return False

        removed = await self.store.delete(code)
        if removed is None:
            return False

        await self._publish(
            SignalEventType.REMOVED,
            code,
            is_fixed=removed.is_fixed,
            owner_account_ref=removed.owner_account_ref,
        )
        return True
