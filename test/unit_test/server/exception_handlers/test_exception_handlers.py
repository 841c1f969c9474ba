"""
Unit tests for server exception handlers.

Tests cover the global handler in isolation and wired into an application.
"""

import json
from unittest.mock import Mock, patch

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient

from gnamiai.server.exception_handlers import setup_exception_handlers
from gnamiai.server.exception_handlers.global_handler import (
    global_exception_handler,
)


class TestGlobalExceptionHandler:
    """Test suite for global exception handler."""

    @pytest.fixture
    def mock_request(self):
        """Create a mock request object."""
        request = Mock(spec=Request)
        request.method = "POST"
        request.url.path = "/api/send"
        request.client = Mock()
        request.client.host = "127.0.0.1"
        return request

    @pytest.mark.asyncio
    async def test_returns_json_500(self, mock_request):
        with patch("gnamiai.server.exception_handlers.global_handler.logger"):
            response = await global_exception_handler(mock_request, RuntimeError("boom"))

        assert isinstance(response, JSONResponse)
        assert response.status_code == 500
        body = json.loads(response.body.decode())
        assert body["detail"] == "Internal server error"
        assert body["error_type"] == "RuntimeError"
        assert isinstance(body["error_id"], int)

    @pytest.mark.asyncio
    async def test_logs_request_context(self, mock_request):
        exc = KeyError("sessionId")

        with patch("gnamiai.server.exception_handlers.global_handler.logger") as mock_logger:
            await global_exception_handler(mock_request, exc)

        mock_logger.error.assert_called_once()
        args, kwargs = mock_logger.error.call_args
        assert "Unhandled exception" in args[0]
        assert "POST /api/send" in args[0]
        assert kwargs["exc_info"] is exc
        assert kwargs["extra"]["client"] == "127.0.0.1"
        assert kwargs["extra"]["error_type"] == "KeyError"

    @pytest.mark.asyncio
    async def test_handles_missing_client(self, mock_request):
        mock_request.client = None

        with patch("gnamiai.server.exception_handlers.global_handler.logger") as mock_logger:
            response = await global_exception_handler(mock_request, ValueError("bad"))

        assert response.status_code == 500
        assert mock_logger.error.call_args[1]["extra"]["client"] == "unknown"

    @pytest.mark.asyncio
    async def test_error_id_is_unique(self, mock_request):
        with patch("gnamiai.server.exception_handlers.global_handler.logger"):
            first = await global_exception_handler(mock_request, ValueError("a"))
            second = await global_exception_handler(mock_request, ValueError("b"))

        assert json.loads(first.body)["error_id"] != json.loads(second.body)["error_id"]


class TestSetupExceptionHandlers:
    """Test the handler wired into an application."""

    def test_registers_handler(self):
        app = FastAPI()
        setup_exception_handlers(app)
        assert app.exception_handlers[Exception] is global_exception_handler

    @pytest.mark.asyncio
    async def test_unhandled_route_error_becomes_json_500(self):
        app = FastAPI()
        setup_exception_handlers(app)

        @app.get("/explode")
        async def explode():
            raise RuntimeError("kaboom")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://localhost") as client:
            response = await client.get("/explode")

        assert response.status_code == 500
        assert response.json()["error_type"] == "RuntimeError"
