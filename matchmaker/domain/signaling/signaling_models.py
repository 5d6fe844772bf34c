"""Signaling domain models."""

import math
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from matchmaker.schemas import SessionDescription

AccessMode = Literal["paid", "free"]


class RegisterParams(BaseModel):
    """Host registration request."""

    code: str | None = None
    offer: SessionDescription | None = None
    ice_candidates: list[Any] = Field(default_factory=list)
    ice_servers: list[Any] = Field(default_factory=list)

    # Fixed device registration
    is_service: bool = False
    device_name: str | None = None

    # Account attribution; client_id wins when both are sent
    client_id: str | None = None
    company_code: str | None = None

    # Hardware fingerprint, subject of the free-mode gate
    disk_serial: str | None = None
    ip_address: str | None = None

    @property
    def account_ref(self) -> str | None:
        for value in (self.client_id, self.company_code):
            if value and value.strip():
                return value.strip()
        return None


class RegisterResult(BaseModel):
    code: str
    is_fixed_code: bool
    created: bool = True
    # None for fixed codes
    expires_in_millis: int | None = None
    mode: AccessMode | None = None
    max_duration_ms: int | None = None

    @property
    def max_duration_minutes(self) -> int | None:
        if self.max_duration_ms is None:
            return None
        # A partial minute still counts
        return math.ceil(self.max_duration_ms / 60_000)


class ResolvedOffer(BaseModel):
    code: str
    offer: SessionDescription
    ice_candidates: list[Any] = Field(default_factory=list)
    ice_servers: list[Any] = Field(default_factory=list)


class AnswerPayload(BaseModel):
    answer: SessionDescription
    ice_candidates: list[Any] = Field(default_factory=list)


class CodeAvailability(BaseModel):
    code: str
    available: bool
    owner: str | None = None


class SessionSummary(BaseModel):
    code: str
    has_offer: bool
    has_answer: bool
    is_fixed: bool
    created_at: datetime
    last_access_at: datetime
    candidate_count: int


class HealthStatus(BaseModel):
    status: str = "ok"
    active_sessions: int
    ttl_ms: int
    # seconds since the service started
    uptime: float
