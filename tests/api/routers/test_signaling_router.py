"""Unit tests for the signaling router endpoints."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from matchmaker.api.routers.signaling import router
from matchmaker.domain.signaling.outcome import Outcome
from matchmaker.domain.signaling.signaling_models import (
    AnswerPayload,
    RegisterParams,
    RegisterResult,
    ResolvedOffer,
)
from matchmaker.schemas import SessionDescription
from matchmaker.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

OFFER = {"type": "offer", "sdp": "v=0 offer"}
ANSWER = {"type": "answer", "sdp": "v=0 answer"}


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client(router)


class TestRegister:
    def test_register_dynamic(self, client: TestClient, mock_service: AsyncMock):
        mock_service.register.return_value = Outcome.success(
            RegisterResult(code="ABC123", is_fixed_code=False, expires_in_millis=300_000)
        )

        response = client.post(
            "/register",
            json={"code": "abc123", "offer": OFFER, "iceCandidates": [{"candidate": "c1"}]},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["code"] == "ABC123"
        assert data["isFixedCode"] is False
        assert data["success"] is True
        assert data["expiresInMillis"] == 300_000

        params: RegisterParams = mock_service.register.call_args.args[0]
        assert params.code == "abc123"
        assert params.offer == SessionDescription(**OFFER)
        assert params.ice_candidates == [{"candidate": "c1"}]
        assert params.ip_address == "testclient"

    def test_register_fixed_free_mode(self, client: TestClient, mock_service: AsyncMock):
        mock_service.register.return_value = Outcome.success(
            RegisterResult(
                code="FIX01",
                is_fixed_code=True,
                expires_in_millis=None,
                mode="free",
                max_duration_ms=1_800_000,
            )
        )

        response = client.post(
            "/register",
            json={
                "code": "FIX01",
                "offer": OFFER,
                "isService": True,
                "clientId": "AcctX",
                "diskSerial": "SN-1",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["isFixedCode"] is True
        assert data["expiresInMillis"] is None
        assert data["mode"] == "free"
        assert data["maxDurationMinutes"] == 30

        params: RegisterParams = mock_service.register.call_args.args[0]
        assert params.is_service is True
        assert params.client_id == "AcctX"
        assert params.disk_serial == "SN-1"

    def test_register_conflict(self, client: TestClient, mock_service: AsyncMock):
        mock_service.register.side_effect = AppError(
            errcode=AppErrorCode.E_CODE_IN_USE,
            errmesg="Code FIX01 is registered to another account",
            status_code=HttpStatusCode.CONFLICT,
        )

        response = client.post("/register", json={"code": "FIX01", "offer": OFFER, "isService": True})

        assert response.status_code == 409
        data = response.json()
        assert data["success"] is False
        assert data["errcode"] == "code_in_use"

    def test_register_rate_limited(self, client: TestClient, mock_service: AsyncMock):
        mock_service.register.return_value = Outcome.rate_limited("Cooling down", 150_000)

        response = client.post("/register", json={"offer": OFFER, "diskSerial": "SN-1"})

        assert response.status_code == 429
        data = response.json()
        assert data["errcode"] == "rate_limited"
        assert data["details"] == {"waitRemainingMs": 150_000, "waitMinutes": 3}

    def test_register_malformed_body(self, client: TestClient, mock_service: AsyncMock):
        response = client.post("/register", json={"offer": "not-an-object"})

        assert response.status_code == 400
        assert response.json()["errcode"] == "invalid_request"
        mock_service.register.assert_not_awaited()


class TestResolve:
    def test_resolve(self, client: TestClient, mock_service: AsyncMock):
        mock_service.resolve.return_value = Outcome.success(
            ResolvedOffer(
                code="ABC123",
                offer=SessionDescription(**OFFER),
                ice_candidates=[{"candidate": "c1"}],
                ice_servers=[{"urls": "stun:stun.example.org"}],
            )
        )

        response = client.get("/resolve", params={"code": "abc123"})

        assert response.status_code == 200
        data = response.json()
        assert data["offer"] == OFFER
        assert data["iceCandidates"] == [{"candidate": "c1"}]
        assert data["iceServers"] == [{"urls": "stun:stun.example.org"}]
        mock_service.resolve.assert_awaited_once_with("abc123")

    def test_resolve_not_found(self, client: TestClient, mock_service: AsyncMock):
        mock_service.resolve.return_value = Outcome.not_found("Code NOPE42 not found")

        response = client.get("/resolve", params={"code": "NOPE42"})

        assert response.status_code == 404
        assert response.json()["errcode"] == "code_not_found"

    def test_resolve_offer_not_ready(self, client: TestClient, mock_service: AsyncMock):
        mock_service.resolve.return_value = Outcome.not_ready("No offer yet")

        response = client.get("/resolve", params={"code": "FIX01"})

        assert response.status_code == 404
        assert response.json()["errcode"] == "offer_not_ready"

    def test_resolve_missing_code(self, client: TestClient, mock_service: AsyncMock):
        response = client.get("/resolve")

        assert response.status_code == 400
        assert response.json()["errcode"] == "invalid_request"
        mock_service.resolve.assert_not_awaited()


class TestAnswer:
    def test_submit_answer(self, client: TestClient, mock_service: AsyncMock):
        mock_service.submit_answer.return_value = Outcome.success(None)

        response = client.post(
            "/answer",
            json={"code": "ABC123", "answer": ANSWER, "iceCandidates": [{"candidate": "v1"}]},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        mock_service.submit_answer.assert_awaited_once_with(
            "ABC123", SessionDescription(**ANSWER), [{"candidate": "v1"}]
        )

    def test_submit_answer_unknown_code(self, client: TestClient, mock_service: AsyncMock):
        mock_service.submit_answer.return_value = Outcome.not_found("Code NOPE42 not found")

        response = client.post("/answer", json={"code": "NOPE42", "answer": ANSWER})

        assert response.status_code == 404

    def test_fetch_answer(self, client: TestClient, mock_service: AsyncMock):
        mock_service.fetch_answer.return_value = Outcome.success(
            AnswerPayload(answer=SessionDescription(**ANSWER), ice_candidates=[])
        )

        response = client.get("/answer", params={"code": "ABC123"})

        assert response.status_code == 200
        assert response.json() == {"answer": ANSWER, "iceCandidates": []}

    def test_fetch_answer_not_ready(self, client: TestClient, mock_service: AsyncMock):
        mock_service.fetch_answer.return_value = Outcome.not_ready("No answer yet")

        response = client.get("/answer", params={"code": "ABC123"})

        assert response.status_code == 404
        assert response.json()["errcode"] == "answer_not_ready"


class TestTeardown:
    def test_delete_session(self, client: TestClient, mock_service: AsyncMock):
        mock_service.delete.return_value = True

        response = client.delete("/register/ABC123")

        assert response.status_code == 204
        mock_service.delete.assert_awaited_once_with("ABC123")

    def test_delete_unknown_session_is_still_204(self, client: TestClient, mock_service: AsyncMock):
        mock_service.delete.return_value = False

        assert client.delete("/register/NOPE42").status_code == 204

    def test_delete_blank_code_is_still_204(self, client: TestClient, mock_service: AsyncMock):
        mock_service.delete.return_value = False

        assert client.delete("/register/%20").status_code == 204
        mock_service.delete.assert_awaited_once_with(" ")


class TestPresence:
    def test_heartbeat(self, client: TestClient, mock_service: AsyncMock):
        mock_service.heartbeat.return_value = Outcome.success(None)

        response = client.post("/heartbeat", json={"code": "FIX01", "clientId": "AcctX"})

        assert response.status_code == 200
        mock_service.heartbeat.assert_awaited_once_with("FIX01")

    def test_heartbeat_unknown_code_still_ok(self, client: TestClient, mock_service: AsyncMock):
        mock_service.heartbeat.return_value = Outcome.not_found("Code NOPE42 not found")

        response = client.post("/heartbeat", json={"code": "NOPE42"})

        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_disconnect(self, client: TestClient, mock_service: AsyncMock):
        mock_service.disconnect.return_value = Outcome.not_found("Code NOPE42 not found")

        response = client.post("/disconnect", json={"code": "NOPE42"})

        assert response.status_code == 200
        mock_service.disconnect.assert_awaited_once_with("NOPE42")

    def test_presence_requires_code(self, client: TestClient, mock_service: AsyncMock):
        response = client.post("/heartbeat", json={})

        assert response.status_code == 400
        mock_service.heartbeat.assert_not_awaited()
