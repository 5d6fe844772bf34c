"""Durable registry of fixed device codes."""

from datetime import datetime, timedelta

from beanie.operators import Set
from loguru import logger
from pymongo.errors import DuplicateKeyError

from matchmaker.schemas import Device, DeviceState, Handshake
from matchmaker.shared.domain.clock import Clock, utc_now
from matchmaker.shared.storage.errors import storage_errors
from matchmaker.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from ..signaling.code_generator import normalize_code
from ..signaling.outcome import Outcome
from .device_models import UpsertResult


def code_in_use(code: str) -> AppError:
    return AppError(
        errcode=AppErrorCode.E_CODE_IN_USE,
        errmesg=f"Code {code} is registered to another account",
        status_code=HttpStatusCode.CONFLICT,
    )


class DeviceRegistry:
    """Fixed code -> owning account, liveness and last published handshake.

    The unique index on device_code is the arbiter for concurrent first
    registrations; the account check is repeated after a duplicate-key
    collision so a racing claim from another account still ends in
    E_CODE_IN_USE.
    """

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock

    async def get(self, code: str) -> Device | None:
        with storage_errors("get"):
            return await Device.find_one(Device.device_code == normalize_code(code))

    async def get_online(self, code: str) -> Device | None:
        with storage_errors("get_online"):
            return await Device.find_one(
                Device.device_code == normalize_code(code),
                Device.is_online == True,  # noqa: E712
            )

    async def exists(self, code: str) -> bool:
        with storage_errors("exists"):
            return await Device.find_one(Device.device_code == normalize_code(code)) is not None

    async def upsert(
        self,
        code: str,
        account_ref: str,
        display_name: str | None = None,
        ip_address: str | None = None,
        handshake: Handshake | None = None,
    ) -> UpsertResult:
        """Claim a code for an account, or refresh the owner's existing claim.

        Raises:
            AppError: E_INVALID_REQUEST without a code or account,
                E_CODE_IN_USE when another account owns the code,
                E_STORAGE_UNAVAILABLE on driver failure
        """
        code = normalize_code(code)
        if not code or not account_ref:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_REQUEST,
                errmesg="Device code and account are required",
                status_code=HttpStatusCode.BAD_REQUEST,
            )

        now = self._clock()
        with storage_errors("upsert"):
            device = await Device.find_one(Device.device_code == code)

            if device is None:
                device = Device(
                    device_code=code,
                    account_ref=account_ref,
                    display_name=display_name,
                    ip_address=ip_address,
                    is_online=True,
                    last_seen_at=now,
                    last_handshake=handshake,
                    created_at=now,
                    updated_at=now,
                )
                try:
                    await device.insert()
                except DuplicateKeyError:
                    # Lost a race on the unique index; the winner decides
                    logger.warning("Concurrent registration of device code {}", code)
                    device = await Device.find_one(Device.device_code == code)
                    if device is None or device.account_ref != account_ref:
                        raise code_in_use(code)
                else:
                    logger.info("Registered device {} for account {}", code, account_ref)
                    return UpsertResult(created=True, device=device)

            if device.account_ref != account_ref:
                logger.warning(
                    "Rejected claim of device {} by account {} (owned by {})",
                    code,
                    account_ref,
                    device.account_ref,
                )
                raise code_in_use(code)

            previous = device.state
            device.is_online = True
            device.last_seen_at = now
            device.updated_at = now
            if display_name is not None:
                device.display_name = display_name
            if ip_address is not None:
                device.ip_address = ip_address
            if handshake is not None:
                device.last_handshake = handshake
            await device.save()

        if previous != DeviceState.ONLINE:
            logger.info("Device {} back online after re-registration", code)
        return UpsertResult(created=False, device=device)

    async def heartbeat(self, code: str) -> Outcome[Device]:
        code = normalize_code(code)
        now = self._clock()
        with storage_errors("heartbeat"):
            device = await Device.find_one(Device.device_code == code)
            if device is None:
                return Outcome.not_found(f"Device {code} is not registered")
            previous = device.state
            await device.set({Device.is_online: True, Device.last_seen_at: now, Device.updated_at: now})

        if previous != DeviceState.ONLINE:
            logger.info("Device {} back online on heartbeat", code)
        return Outcome.success(device)

    async def disconnect(self, code: str) -> Outcome[Device]:
        """Take a device offline now instead of waiting for the sweeper."""
        code = normalize_code(code)
        now = self._clock()
        with storage_errors("disconnect"):
            device = await Device.find_one(Device.device_code == code)
            if device is None:
                return Outcome.not_found(f"Device {code} is not registered")
            previous = device.state
            await device.set({Device.is_online: False, Device.updated_at: now})

        if previous != DeviceState.OFFLINE:
            logger.info("Device {} disconnected", code)
        return Outcome.success(device)

    async def mark_offline_if_stale(self, now: datetime, threshold: timedelta) -> int:
        """Flip every online device silent for longer than threshold to offline.

        Returns:
            Number of devices taken offline
        """
        cutoff = now - threshold
        with storage_errors("mark_offline_if_stale"):
            result = await Device.find(
                Device.is_online == True,  # noqa: E712
                Device.last_seen_at < cutoff,
            ).update_many(Set({Device.is_online: False, Device.updated_at: now}))

        modified = result.modified_count if result else 0
        if modified:
            logger.info("Marked {} stale device(s) offline (last seen before {})", modified, cutoff)
        return modified

    async def remove(self, code: str) -> bool:
        """Administrative deletion. Returns False if the code was not registered."""
        code = normalize_code(code)
        with storage_errors("remove"):
            device = await Device.find_one(Device.device_code == code)
            if device is None:
                return False
            await device.delete()

        logger.info("Removed device {} (account {})", code, device.account_ref)
        return True
