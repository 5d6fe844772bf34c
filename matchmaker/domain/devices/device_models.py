"""Device domain models."""

from datetime import datetime

from pydantic import BaseModel

from matchmaker.schemas import Device, DeviceState


class UpsertResult(BaseModel):
    created: bool
    device: Device


class DeviceResponse(BaseModel):
    """Device view without the stored handshake blobs."""

    device_code: str
    account_ref: str
    display_name: str | None = None
    ip_address: str | None = None
    state: DeviceState
    is_online: bool
    has_handshake: bool
    last_seen_at: datetime
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_document(cls, device: Device) -> "DeviceResponse":
        return cls(
            device_code=device.device_code,
            account_ref=device.account_ref,
            display_name=device.display_name,
            ip_address=device.ip_address,
            state=device.state,
            is_online=device.is_online,
            has_handshake=device.last_handshake is not None,
            last_seen_at=device.last_seen_at,
            created_at=device.created_at,
            updated_at=device.updated_at,
        )


class DeviceRegistration(BaseModel):
    created: bool
    device: DeviceResponse
