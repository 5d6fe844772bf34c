"""Device ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import field_validator

from .device_state import DeviceState
from .handshake import Handshake
from .schema_utils import parse_mongo_datetime


class Device(Document):
    """A fixed access code permanently bound to one account's device."""

    device_code: Indexed(str, unique=True)  # type: ignore[valid-type]
    account_ref: Indexed(str)  # type: ignore[valid-type]

    display_name: str | None = None
    ip_address: str | None = None

    # Liveness, derived from heartbeat recency
    is_online: bool = True
    last_seen_at: datetime

    # Seeds a session record when a viewer resolves the code after eviction/restart
    last_handshake: Handshake | None = None

    # Timestamps
    created_at: datetime
    updated_at: datetime

    @field_validator("last_seen_at", "created_at", "updated_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        """Parse MongoDB Extended JSON datetime format."""
        return parse_mongo_datetime(v)

    @property
    def state(self) -> DeviceState:
        return DeviceState.ONLINE if self.is_online else DeviceState.OFFLINE

    class Settings:
        name = "device"
        # device_code (unique) and account_ref come from Indexed
        indexes = [
            [("is_online", 1), ("last_seen_at", 1)],
        ]
