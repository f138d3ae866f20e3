"""Unit tests for the request logging middleware."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient

from shipdesk.core.logging.middleware import RequestLoggingMiddleware, get_client_ip


pytestmark = pytest.mark.unit


def _app(**middleware_kwargs) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestLoggingMiddleware, **middleware_kwargs)

    @app.get("/ok")
    async def ok() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/missing")
    async def missing() -> None:
        raise HTTPException(status_code=404)

    @app.get("/broken")
    async def broken() -> JSONResponse:
        return JSONResponse({"detail": "down"}, status_code=503)

    @app.get("/health/live")
    async def live() -> dict[str, str]:
        return {"status": "ok"}

    return app


@pytest.fixture
def logger():
    with patch("shipdesk.core.logging.middleware.logger", MagicMock()) as mock_logger:
        yield mock_logger


async def _get(app: FastAPI, path: str, **headers: str):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        return await client.get(path, headers=headers)


class TestRequestLoggingMiddleware:
    async def test_success_logged_at_info(self, logger):
        await _get(_app(slow_request_ms=60_000), "/ok")

        logger.info.assert_called_once()
        event, fields = logger.info.call_args.args[0], logger.info.call_args.kwargs
        assert event == "request_completed"
        assert fields["method"] == "GET"
        assert fields["path"] == "/ok"
        assert fields["status_code"] == 200
        assert fields["duration_ms"] >= 0

    async def test_slow_success_logged_as_warning(self, logger):
        await _get(_app(slow_request_ms=0), "/ok")

        logger.warning.assert_called_once()
        assert logger.warning.call_args.args[0] == "slow_request"
        logger.info.assert_not_called()

    async def test_client_error_logged_at_warning(self, logger):
        await _get(_app(slow_request_ms=60_000), "/missing")

        assert logger.warning.call_args.args[0] == "request_completed"
        assert logger.warning.call_args.kwargs["status_code"] == 404

    async def test_server_error_logged_at_error(self, logger):
        await _get(_app(slow_request_ms=60_000), "/broken")

        assert logger.error.call_args.kwargs["status_code"] == 503

    async def test_quiet_paths_not_logged(self, logger):
        await _get(_app(slow_request_ms=0), "/health/live")

        logger.info.assert_not_called()
        logger.warning.assert_not_called()

    async def test_forwarded_client_ip_logged(self, logger):
        await _get(_app(slow_request_ms=60_000), "/ok", **{"X-Forwarded-For": "198.51.100.4"})

        assert logger.info.call_args.kwargs["client_ip"] == "198.51.100.4"


class TestGetClientIp:
    def test_first_forwarded_hop_wins(self):
        request = SimpleNamespace(
            headers={"X-Forwarded-For": " 203.0.113.7 , 10.0.0.1"},
            client=SimpleNamespace(host="10.0.0.1"),
        )

        assert get_client_ip(request) == "203.0.113.7"

    def test_falls_back_to_peer_address(self):
        request = SimpleNamespace(headers={}, client=SimpleNamespace(host="10.0.0.2"))

        assert get_client_ip(request) == "10.0.0.2"

    def test_no_client(self):
        assert get_client_ip(SimpleNamespace(headers={}, client=None)) is None
