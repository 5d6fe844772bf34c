"""Application error type raised by the domain and mapped to HTTP by the API layer."""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class HttpStatusCode(IntEnum):
    OK = 200
    CREATED = 201
    NO_CONTENT = 204
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    TOO_MANY_REQUESTS = 429
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503


class AppErrorCode(str, Enum):
    """Machine-readable error codes returned in the `errcode` field."""

    E_INVALID_REQUEST = "invalid_request"
    E_UNAUTHORIZED = "unauthorized"
    E_CODE_NOT_FOUND = "code_not_found"
    E_OFFER_NOT_READY = "offer_not_ready"
    E_ANSWER_NOT_READY = "answer_not_ready"
    E_CODE_IN_USE = "code_in_use"
    E_DEVICE_NOT_FOUND = "device_not_found"
    E_ALREADY_ACTIVE = "already_active"
    E_RATE_LIMITED = "rate_limited"
    E_CODE_SPACE_EXHAUSTED = "code_space_exhausted"
    E_STORAGE_UNAVAILABLE = "storage_unavailable"
    E_INTERNAL_ERROR = "internal_error"

    def __str__(self) -> str:
        return self.value


class AppError(Exception):
    """Error carrying an errcode, a message and the HTTP status to answer with.

    The call site is captured at construction so logs point at the raiser
    rather than at the exception handler.
    """

    def __init__(
        self,
        errcode: AppErrorCode,
        errmesg: str,
        status_code: HttpStatusCode = HttpStatusCode.BAD_REQUEST,
        *,
        details: dict | None = None,
    ):
        super().__init__(errmesg)
        self.errcode = errcode
        self.errmesg = errmesg
        self.status_code = int(status_code)
        self.details = details or {}
        self.erresid = uuid4().hex[:10]

        frame = inspect.currentframe()
        caller = frame.f_back if frame else None
        if caller is not None:
            module_name = caller.f_globals.get("__name__", caller.f_code.co_filename)
            self.caller_info = f"{module_name}:{caller.f_code.co_name}:{caller.f_lineno}"
        else:
            self.caller_info = "unknown"

    def __repr__(self) -> str:
        return f"AppError({self.errcode.value!r}, {self.errmesg!r}, {self.status_code})"
