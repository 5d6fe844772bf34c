from typing import Any

from pydantic import Field

from matchmaker.schemas import SessionDescription

from .base import CamelModel


class RegisterIn(CamelModel):
    code: str | None = None
    client_id: str | None = None
    company_code: str | None = None
    offer: SessionDescription | None = None
    ice_candidates: list[Any] = Field(default_factory=list)
    ice_servers: list[Any] = Field(default_factory=list)
    is_service: bool = False
    device_name: str | None = None
    disk_serial: str | None = None


class RegisterOut(CamelModel):
    code: str
    is_fixed_code: bool
    success: bool = True
    expires_in_millis: int | None
    mode: str | None = None
    max_duration_ms: int | None = None
    max_duration_minutes: int | None = None


class ResolveOut(CamelModel):
    code: str
    offer: SessionDescription
    ice_candidates: list[Any]
    ice_servers: list[Any]


class AnswerIn(CamelModel):
    code: str
    answer: SessionDescription | None = None
    ice_candidates: list[Any] = Field(default_factory=list)


class AnswerOut(CamelModel):
    answer: SessionDescription
    ice_candidates: list[Any]


class PresenceIn(CamelModel):
    """Heartbeat / disconnect body."""

    code: str
    client_id: str | None = None
