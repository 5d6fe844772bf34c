from fastapi import APIRouter

from matchmaker.api.dependency import Matchmaker
from matchmaker.api.schemas.base import SuccessOut
from matchmaker.api.schemas.free_mode import EndFreeSessionIn, ValidateAccountIn, ValidateAccountOut

router = APIRouter(prefix="/api", tags=["free-mode"])


@router.post("/validate-account")
async def validate_account(body: ValidateAccountIn, service: Matchmaker) -> ValidateAccountOut:
    """Free-mode admission check. A cooldown is a 200 with allowed=false."""
    decision = await service.validate_account(body.disk_serial, body.company_code)

    return ValidateAccountOut(
        allowed=decision.allowed,
        is_paid=decision.is_paid,
        wait_minutes=decision.wait_minutes,
        message=decision.message,
        state=decision.state.value,
        wait_remaining_ms=decision.wait_remaining_ms,
    )


@router.post("/end-free-session")
async def end_free_session(body: EndFreeSessionIn, service: Matchmaker) -> SuccessOut:
    """Close the device's trial. Idempotent."""
    await service.end_free_session(body.disk_serial)
    return SuccessOut()
