"""Free-mode trial ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import Field, field_validator
from pymongo import IndexModel

from .schema_utils import parse_mongo_datetime


class FreeModeSession(Document):
    """One unpaid trial session, tracked per hardware fingerprint."""

    trial_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    device_fingerprint: str
    account_code: str | None = None

    started_at: datetime
    ended_at: datetime | None = None

    # Mirrors `ended_at is None`; backs the one-open-trial-per-fingerprint index
    is_open: bool = Field(default=True)

    @field_validator("started_at", "ended_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        """Parse MongoDB Extended JSON datetime format."""
        return parse_mongo_datetime(v)

    class Settings:
        name = "free_mode_session"
        # trial_id (unique) comes from Indexed
        indexes = [
            IndexModel(
                [("device_fingerprint", 1)],
                partialFilterExpression={"is_open": True},
                unique=True,
                name="device_fingerprint_open_unique",
            ),
            IndexModel(
                [("device_fingerprint", 1), ("ended_at", -1)],
                name="device_fingerprint_ended_at",
            ),
        ]
