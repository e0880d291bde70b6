"""
Unit tests for the exception handlers.

Agent core errors map onto ``{ok, proposal, error}`` bodies with their HTTP
status; everything else goes through the global 500 handler.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI, Request

from actiongate_ai.agent_core.errors import (
    ActionGateError,
    InvalidTransitionError,
    ProposalNotFoundError,
    RetryNotAllowedError,
    ToolArgumentsError,
    UnknownToolError,
)
from actiongate_ai.server.exception_handlers import setup_exception_handlers
from actiongate_ai.server.exception_handlers.action_handlers import (
    action_gate_error_handler,
    invalid_transition_handler,
    proposal_not_found_handler,
    registry_error_handler,
)
from actiongate_ai.server.exception_handlers.global_handler import global_exception_handler


def _mock_request(method: str = "POST", path: str = "/api/v1/actions/p-1/approve") -> MagicMock:
    request = MagicMock(spec=Request)
    request.method = method
    request.url.path = path
    request.query_params = {}
    request.client = MagicMock(host="127.0.0.1")
    return request


def _json(response) -> dict:
    return json.loads(response.body)


class TestActionHandlers:
    @pytest.mark.asyncio
    async def test_proposal_not_found_is_404(self):
        response = await proposal_not_found_handler(_mock_request(), ProposalNotFoundError("p-1"))

        assert response.status_code == 404
        assert _json(response) == {"ok": False, "proposal": None, "error": "Action proposal not found: p-1"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc",
        [
            InvalidTransitionError("p-1", "declined", "approved"),
            RetryNotAllowedError("p-1", "succeeded"),
        ],
    )
    async def test_invalid_transition_is_409(self, exc):
        response = await invalid_transition_handler(_mock_request(), exc)

        assert response.status_code == 409
        assert _json(response)["error"] == exc.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc",
        [UnknownToolError("drop_tables"), ToolArgumentsError("create_issue", "title: Field required")],
    )
    async def test_registry_errors_are_422(self, exc):
        response = await registry_error_handler(_mock_request(), exc)

        assert response.status_code == 422
        assert _json(response)["ok"] is False

    @pytest.mark.asyncio
    async def test_generic_action_gate_error_is_400(self):
        response = await action_gate_error_handler(_mock_request(), ActionGateError("read tools cannot be proposed"))

        assert response.status_code == 400
        assert _json(response)["error"] == "read tools cannot be proposed"


class TestGlobalExceptionHandler:
    @pytest.mark.asyncio
    async def test_returns_500_with_error_id(self):
        exc = ValueError("database exploded")

        with patch("actiongate_ai.server.exception_handlers.global_handler.log_error") as mock_log_error:
            response = await global_exception_handler(_mock_request("GET", "/api/v1/chat/conversations"), exc)

        assert response.status_code == 500
        body = _json(response)
        assert body["detail"] == "Internal server error"
        assert body["error_id"] == id(exc)
        assert body["error_type"] == "ValueError"
        mock_log_error.assert_called_once()
        assert mock_log_error.call_args[0][:2] == ("ValueError", "database exploded")

    @pytest.mark.asyncio
    async def test_request_without_client(self):
        request = _mock_request()
        request.client = None

        response = await global_exception_handler(request, RuntimeError("x"))

        assert response.status_code == 500


class TestSetupExceptionHandlers:
    def test_registers_all_handlers(self):
        app = FastAPI()

        setup_exception_handlers(app)

        for exc_type in (ProposalNotFoundError, InvalidTransitionError, ActionGateError, Exception):
            assert exc_type in app.exception_handlers
        assert app.exception_handlers[ProposalNotFoundError] is proposal_not_found_handler
