"""Tests for mapping domain outcomes onto API errors."""

import pytest

from matchmaker.api.errors import unwrap
from matchmaker.domain.signaling.outcome import Outcome
from matchmaker.utils.app_errors import AppError, AppErrorCode


def test_ok_returns_value():
    assert unwrap(Outcome.success("ABC123")) == "ABC123"


def test_not_found():
    with pytest.raises(AppError) as exc_info:
        unwrap(Outcome.not_found("Code ABC123 not found"))

    assert exc_info.value.errcode == AppErrorCode.E_CODE_NOT_FOUND
    assert exc_info.value.status_code == 404
    assert exc_info.value.errmesg == "Code ABC123 not found"


@pytest.mark.parametrize(
    "not_ready",
    [AppErrorCode.E_OFFER_NOT_READY, AppErrorCode.E_ANSWER_NOT_READY],
)
def test_not_ready_uses_caller_errcode(not_ready: AppErrorCode):
    with pytest.raises(AppError) as exc_info:
        unwrap(Outcome.not_ready("Not yet"), not_ready=not_ready)

    assert exc_info.value.errcode == not_ready
    assert exc_info.value.status_code == 404


def test_rate_limited_carries_wait():
    with pytest.raises(AppError) as exc_info:
        unwrap(Outcome.rate_limited("Cooling down", 60_001))

    assert exc_info.value.status_code == 429
    assert exc_info.value.details == {"waitRemainingMs": 60_001, "waitMinutes": 2}
