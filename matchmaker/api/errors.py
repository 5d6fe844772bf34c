from typing import TypeVar

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, ORJSONResponse
from loguru import logger

from matchmaker.domain.free_mode.gatekeeper import to_wait_minutes
from matchmaker.domain.signaling.outcome import Outcome, OutcomeKind
from matchmaker.shared.api.utils import ApiFailure, api_failure, make_response
from matchmaker.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

T = TypeVar("T")


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """
    Custom exception handler for AppError.
    Converts AppError to ApiFailure and returns via make_response.
    """
    # Log with the caller info captured when AppError was raised
    log_msg = f"{exc.errcode} {exc.erresid} msg={exc.errmesg} caller={exc.caller_info}"
    if exc.status_code >= 500:
        logger.error(log_msg)
    else:
        logger.warning(log_msg)

    failure = ApiFailure(
        errcode=exc.errcode.value,
        errmesg=exc.errmesg,
        erresid=exc.erresid,
        details=exc.details or None,
    )
    return make_response(failure, status_code=exc.status_code)


async def app_validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()

    logger.warning(
        "Validation error: path={} method={} errors={}",
        request.url.path,
        request.method,
        errors,
    )

    failure = api_failure(AppErrorCode.E_INVALID_REQUEST.value, errmesg=str(errors))

    return ORJSONResponse(status_code=HttpStatusCode.BAD_REQUEST, content=failure.model_dump())


def unwrap(outcome: Outcome[T], *, not_ready: AppErrorCode = AppErrorCode.E_OFFER_NOT_READY) -> T:
    """Return an OK outcome's value or raise the AppError its kind maps to.

    Args:
        outcome: Domain result
        not_ready: errcode used for NOT_READY (offer or answer)
    """
    if outcome.kind == OutcomeKind.OK:
        return outcome.value  # type: ignore[return-value]

    message = outcome.message or str(outcome.kind)
    if outcome.kind == OutcomeKind.NOT_FOUND:
        raise AppError(
            errcode=AppErrorCode.E_CODE_NOT_FOUND,
            errmesg=message,
            status_code=HttpStatusCode.NOT_FOUND,
        )
    if outcome.kind == OutcomeKind.NOT_READY:
        raise AppError(errcode=not_ready, errmesg=message, status_code=HttpStatusCode.NOT_FOUND)
    if outcome.kind == OutcomeKind.RATE_LIMITED:
        wait_ms = outcome.wait_remaining_ms or 0
        raise AppError(
            errcode=AppErrorCode.E_RATE_LIMITED,
            errmesg=message,
            status_code=HttpStatusCode.TOO_MANY_REQUESTS,
            details={"waitRemainingMs": wait_ms, "waitMinutes": to_wait_minutes(wait_ms)},
        )

    raise AppError(
        errcode=AppErrorCode.E_INTERNAL_ERROR,
        errmesg=f"Unexpected outcome {outcome.kind}",
        status_code=HttpStatusCode.INTERNAL_SERVER_ERROR,
    )
