from fastapi import APIRouter

from matchmaker.api.dependency import ApiKey, Matchmaker
from matchmaker.api.schemas.base import ApiOut
from matchmaker.api.schemas.devices import DeviceOut, DeviceRegisterIn, DeviceRegisterOut
from matchmaker.domain.devices.device_models import DeviceResponse
from matchmaker.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

router = APIRouter(prefix="/api/devices", tags=["devices"], dependencies=[ApiKey])


def to_device_out(device: DeviceResponse) -> DeviceOut:
    return DeviceOut(
        device_code=device.device_code,
        account_ref=device.account_ref,
        display_name=device.display_name,
        state=device.state.value,
        is_online=device.is_online,
        has_handshake=device.has_handshake,
        last_seen_at=device.last_seen_at,
        created_at=device.created_at,
        updated_at=device.updated_at,
    )


@router.post("/register", status_code=201)
async def preregister_device(body: DeviceRegisterIn, service: Matchmaker) -> ApiOut[DeviceRegisterOut]:
    """Claim a fixed code for an account before the host first connects."""
    result = await service.preregister_device(
        body.code,
        body.client_id or body.company_code,
        display_name=body.device_name,
    )

    return ApiOut[DeviceRegisterOut](
        results=DeviceRegisterOut(
            created=result.created,
            device=to_device_out(result.device),
        )
    )


@router.get("/{code}")
async def get_device(code: str, service: Matchmaker) -> ApiOut[DeviceOut]:
    device = await service.get_device(code)
    if device is None:
        raise AppError(
            errcode=AppErrorCode.E_DEVICE_NOT_FOUND,
            errmesg=f"Device not found: {code}",
            status_code=HttpStatusCode.NOT_FOUND,
        )
    return ApiOut[DeviceOut](results=to_device_out(device))


@router.delete("/{code}")
async def remove_device(code: str, service: Matchmaker) -> ApiOut[dict]:
    removed = await service.remove_device(code)
    if not removed:
        raise AppError(
            errcode=AppErrorCode.E_DEVICE_NOT_FOUND,
            errmesg=f"Device not found: {code}",
            status_code=HttpStatusCode.NOT_FOUND,
        )
    return ApiOut[dict](results={"removed": True})
