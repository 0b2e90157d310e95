import pytest

from reqlog.core.config import LoggerConfig, Settings
from reqlog.core.redaction import REDACTED_VALUE
from reqlog.main import API_PREFIX, create_application


def make_app(**config):
    settings = Settings(_env_file=None, APP_VERSION="2.0.0")
    return create_application(settings=settings, config=LoggerConfig(**config))


class TestHealth:
    @pytest.mark.asyncio
    async def test_health_logs_at_debug_only(self, client_for, read_channels):
        async with client_for(make_app(level="debug")) as client:
            response = await client.get(f"{API_PREFIX}/system/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": "2.0.0"}
        (entry,), _ = read_channels()
        assert entry["msg"] == "health check"
        assert entry["req"]["url"] == f"{API_PREFIX}/system/health"

    @pytest.mark.asyncio
    async def test_health_silent_at_default_level(self, client_for, read_channels):
        async with client_for(make_app()) as client:
            await client.get(f"{API_PREFIX}/system/health")

        assert read_channels() == ([], [])


class TestLogin:
    @pytest.mark.asyncio
    async def test_successful_login(self, client_for, read_channels):
        app = make_app(redact_keys=["authorization", "password"], auto_logging="access")
        async with client_for(app) as client:
            response = await client.post(
                f"{API_PREFIX}/auth/login",
                json={"email": "a@example.com", "password": "pw"},
                headers={"authorization": "Bearer secret", "x-user-id": "u-7"},
            )

        assert response.status_code == 200
        assert response.json() == {"ok": True}

        out, err = read_channels()
        assert err == []
        received, success, access = out
        assert received["trace"]["authorization"] == REDACTED_VALUE
        assert received["userId"] == "u-7"
        assert received["feature"] == "auth-login"
        assert success["trace"] == {"email": "a@example.com"}
        assert access["msg"] == "Request completed"
        assert access["status"] == 200
        assert access["userId"] == "u-7"

    @pytest.mark.asyncio
    async def test_missing_fields_warn_and_reject(self, client_for, read_channels):
        async with client_for(make_app()) as client:
            response = await client.post(f"{API_PREFIX}/auth/login", content=b"not json")

        assert response.status_code == 400
        out, _ = read_channels()
        assert [r["msg"] for r in out] == ["login request received", "validation failed"]
        assert out[1]["level"] == "warning"
        assert out[1]["userId"] == "anonymous"

    @pytest.mark.asyncio
    async def test_unhandled_failure_is_logged_and_answered(
        self, client_for, read_channels
    ):
        app = make_app(auto_logging="error")
        async with client_for(app, raise_app_exceptions=False) as client:
            response = await client.post(
                f"{API_PREFIX}/auth/login",
                json={"email": "fail@example.com", "password": "pw"},
                headers={"x-request-id": "req-1"},
            )

        assert response.status_code == 500
        assert response.json()["trace_id"] == "req-1"

        _, (entry,) = read_channels()
        assert entry["msg"] == "Unhandled error"
        assert entry["trace_id"] == "req-1"
        assert entry["err"]["message"] == "Simulated unhandled authentication failure"

    @pytest.mark.asyncio
    async def test_failure_response_reports_ray_trace_id(self, client_for, read_channels):
        app = make_app(auto_logging="error")
        async with client_for(app, raise_app_exceptions=False) as client:
            response = await client.post(
                f"{API_PREFIX}/auth/login",
                json={"email": "fail@example.com", "password": "pw"},
                headers={"cf-ray": "ray-9"},
            )

        assert response.status_code == 500
        assert response.json()["trace_id"] == "ray-9"
        _, (entry,) = read_channels()
        assert entry["trace_id"] == "ray-9"
