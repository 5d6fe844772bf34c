"""Short access-code generation.

Codes are drawn from a 32-symbol alphabet without the look-alike characters
0/O and 1/I so they can be read aloud and typed by hand.
"""

import re
import secrets
from collections.abc import Awaitable, Callable

from loguru import logger

from matchmaker.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MIN_CODE_LENGTH = 4
MAX_CODE_LENGTH = 16

IsTaken = Callable[[str], Awaitable[bool]]


def normalize_code(raw: str | None) -> str:
    """Trim and upper-case a code; every entry point goes through here."""
    return (raw or "").strip().upper()


def validate_length(length: int) -> int:
    if not MIN_CODE_LENGTH <= length <= MAX_CODE_LENGTH:
        raise AppError(
            errcode=AppErrorCode.E_INVALID_REQUEST,
            errmesg=f"Code length must be between {MIN_CODE_LENGTH} and {MAX_CODE_LENGTH}",
            status_code=HttpStatusCode.BAD_REQUEST,
        )
    return length


def random_code(length: int) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class CodeGenerator:
    """Produces codes that are not live in the session store or the device registry."""

    def __init__(self, default_length: int = 6, max_attempts: int = 100, *, is_device_code: IsTaken):
        self.default_length = validate_length(default_length)
        self.max_attempts = max_attempts
        self._is_device_code = is_device_code

    async def generate(self, length: int | None = None, *, is_live_session: IsTaken) -> str:
        """Draw candidates until one is free in both stores.

        Args:
            length: Code length, defaults to the configured length
            is_live_session: Session-store check; the store passes its
                lock-free variant when called under its mutation lock

        Raises:
            AppError: E_INVALID_REQUEST for a bad length,
                E_CODE_SPACE_EXHAUSTED after max_attempts collisions
        """
        length = validate_length(length or self.default_length)

        for attempt in range(1, self.max_attempts + 1):
            candidate = random_code(length)
            if await is_live_session(candidate):
                continue
            if await self._is_device_code(candidate):
                continue
            if attempt > 1:
                logger.debug("Generated code after {} attempts", attempt)
            return candidate

        logger.error("Code space exhausted after {} attempts (length={})", self.max_attempts, length)
        raise AppError(
            errcode=AppErrorCode.E_CODE_SPACE_EXHAUSTED,
            errmesg=f"Could not find a free code after {self.max_attempts} attempts",
            status_code=HttpStatusCode.INTERNAL_SERVER_ERROR,
        )


REQUESTED_CODE_PATTERN = re.compile(r"^[A-Z0-9_-]{3,32}$")


def validate_requested_code(code: str) -> str:
    """Codes picked by hosts: 3-32 characters of A-Z, 0-9, '-' or '_' (after normalization)."""
    if not REQUESTED_CODE_PATTERN.match(code):
        raise AppError(
            errcode=AppErrorCode.E_INVALID_REQUEST,
            errmesg="Code must be 3-32 characters of A-Z, 0-9, '-' or '_'",
            status_code=HttpStatusCode.BAD_REQUEST,
        )
    return code
