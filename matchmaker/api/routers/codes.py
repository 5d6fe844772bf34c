from fastapi import APIRouter, Query

from matchmaker.api.dependency import Matchmaker
from matchmaker.api.routers.signaling import require_code_param
from matchmaker.api.schemas.codes import CheckCodeOut, GenerateCodeOut

router = APIRouter(prefix="/api", tags=["codes"])


@router.get("/generate-code")
async def generate_code(
    service: Matchmaker,
    length: int | None = Query(None, description="Code length (4-16)"),
) -> GenerateCodeOut:
    """Propose a currently unused code. Nothing is reserved until /register."""
    code = await service.generate_code(length)
    return GenerateCodeOut(code=code, available=True)


@router.get("/check-code")
async def check_code(
    service: Matchmaker,
    code: str | None = Query(None, description="Code to check"),
) -> CheckCodeOut:
    result = await service.check_code(require_code_param(code))
    return CheckCodeOut(code=result.code, available=result.available, owner=result.owner)
