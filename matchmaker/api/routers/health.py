from fastapi import APIRouter

from matchmaker.api.dependency import ApiKey, Matchmaker
from matchmaker.api.schemas.health import HealthOut, SessionItemOut, SessionsOut
from matchmaker.shared.domain.clock import dt_to_ms

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(service: Matchmaker) -> HealthOut:
    status = await service.health()
    return HealthOut(
        status=status.status,
        active_sessions=status.active_sessions,
        ttl_ms=status.ttl_ms,
        uptime=status.uptime,
    )


@router.get("/sessions", dependencies=[ApiKey])
async def list_sessions(service: Matchmaker) -> SessionsOut:
    """Debug listing of live session records, without SDP payloads."""
    sessions = await service.list_sessions()
    return SessionsOut(
        count=len(sessions),
        sessions=[
            SessionItemOut(
                code=s.code,
                has_offer=s.has_offer,
                has_answer=s.has_answer,
                is_fixed=s.is_fixed,
                created_at=dt_to_ms(s.created_at),
                last_access_at=dt_to_ms(s.last_access_at),
                candidate_count=s.candidate_count,
            )
            for s in sessions
        ],
    )
