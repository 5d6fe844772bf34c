"""Tests for application assembly."""

from matchmaker.main import app, build_granian_kwargs
from matchmaker.shared.api.utils import get_all_routes_info


def test_all_routers_loaded():
    paths = {info["path"] for info in get_all_routes_info(app)}

    assert {
        "/register",
        "/register/{code}",
        "/resolve",
        "/answer",
        "/heartbeat",
        "/disconnect",
        "/api/generate-code",
        "/api/check-code",
        "/api/validate-account",
        "/api/end-free-session",
        "/api/devices/register",
        "/api/devices/{code}",
        "/health",
        "/sessions",
    } <= paths


def test_single_worker():
    # Sessions live in process memory
    assert build_granian_kwargs()["workers"] == 1
