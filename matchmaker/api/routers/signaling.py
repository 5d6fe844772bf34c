from fastapi import APIRouter, Query, Request, Response
from loguru import logger

from matchmaker.api.dependency import Matchmaker
from matchmaker.api.errors import unwrap
from matchmaker.api.schemas.base import SuccessOut
from matchmaker.api.schemas.signaling import (
    AnswerIn,
    AnswerOut,
    PresenceIn,
    RegisterIn,
    RegisterOut,
    ResolveOut,
)
from matchmaker.domain.signaling.signaling_models import RegisterParams
from matchmaker.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

router = APIRouter(tags=["signaling"])


def require_code_param(code: str | None) -> str:
    if not code or not code.strip():
        raise AppError(
            errcode=AppErrorCode.E_INVALID_REQUEST,
            errmesg="Missing code parameter",
            status_code=HttpStatusCode.BAD_REQUEST,
        )
    return code


@router.post("/register", status_code=201)
async def register(body: RegisterIn, request: Request, service: Matchmaker) -> RegisterOut:
    """Host publishes its offer under a dynamic or fixed code."""
    params = RegisterParams(
        code=body.code,
        offer=body.offer,
        ice_candidates=body.ice_candidates,
        ice_servers=body.ice_servers,
        is_service=body.is_service,
        device_name=body.device_name,
        client_id=body.client_id,
        company_code=body.company_code,
        disk_serial=body.disk_serial,
        ip_address=request.client.host if request.client else None,
    )

    result = unwrap(await service.register(params))

    return RegisterOut(
        code=result.code,
        is_fixed_code=result.is_fixed_code,
        expires_in_millis=result.expires_in_millis,
        mode=result.mode,
        max_duration_ms=result.max_duration_ms,
        max_duration_minutes=result.max_duration_minutes,
    )


@router.get("/resolve")
async def resolve(
    service: Matchmaker,
    code: str | None = Query(None, description="Access code, case-insensitive"),
) -> ResolveOut:
    """Viewer fetches the host's offer."""
    result = unwrap(await service.resolve(require_code_param(code)))

    return ResolveOut(
        code=result.code,
        offer=result.offer,
        ice_candidates=result.ice_candidates,
        ice_servers=result.ice_servers,
    )


@router.post("/answer")
async def submit_answer(body: AnswerIn, service: Matchmaker) -> SuccessOut:
    """Viewer posts its answer."""
    unwrap(await service.submit_answer(require_code_param(body.code), body.answer, body.ice_candidates))
    return SuccessOut()


@router.get("/answer")
async def fetch_answer(
    service: Matchmaker,
    code: str | None = Query(None, description="Access code, case-insensitive"),
) -> AnswerOut:
    """Host polls for the viewer's answer; 404 answer_not_ready until posted."""
    result = unwrap(
        await service.fetch_answer(require_code_param(code)),
        not_ready=AppErrorCode.E_ANSWER_NOT_READY,
    )
    return AnswerOut(answer=result.answer, ice_candidates=result.ice_candidates)


@router.delete("/register/{code}", status_code=204)
async def delete_session(code: str, service: Matchmaker) -> Response:
    await service.delete(code)
    return Response(status_code=204)


@router.post("/heartbeat")
async def heartbeat(body: PresenceIn, service: Matchmaker) -> SuccessOut:
    outcome = await service.heartbeat(require_code_param(body.code))
    if not outcome.ok:
        logger.info("Heartbeat for unknown code {} (client {})", body.code, body.client_id)
    return SuccessOut()


@router.post("/disconnect")
async def disconnect(body: PresenceIn, service: Matchmaker) -> SuccessOut:
    outcome = await service.disconnect(require_code_param(body.code))
    if not outcome.ok:
        logger.info("Disconnect for unknown code {} (client {})", body.code, body.client_id)
    return SuccessOut()
