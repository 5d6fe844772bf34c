from datetime import datetime

from .base import CamelModel


class DeviceRegisterIn(CamelModel):
    code: str
    client_id: str | None = None
    company_code: str | None = None
    device_name: str | None = None


class DeviceOut(CamelModel):
    device_code: str
    account_ref: str
    display_name: str | None = None
    state: str
    is_online: bool
    has_handshake: bool
    last_seen_at: datetime
    created_at: datetime
    updated_at: datetime


class DeviceRegisterOut(CamelModel):
    created: bool
    device: DeviceOut
