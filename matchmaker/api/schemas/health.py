from .base import CamelModel


class HealthOut(CamelModel):
    status: str
    active_sessions: int
    ttl_ms: int
    uptime: float


class SessionItemOut(CamelModel):
    code: str
    has_offer: bool
    has_answer: bool
    is_fixed: bool
    # epoch milliseconds
    created_at: int
    last_access_at: int
    candidate_count: int


class SessionsOut(CamelModel):
    count: int
    sessions: list[SessionItemOut]
