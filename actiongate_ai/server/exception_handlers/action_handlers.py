"""
Exception handlers for agent core errors.

Errors raised by the action lifecycle are answered with the same
``{ok, proposal, error}`` body as the decision endpoints.
"""

from fastapi import Request
from fastapi.responses import JSONResponse

from actiongate_ai.agent_core.errors import (
    ActionGateError,
    InvalidTransitionError,
    ProposalNotFoundError,
    RegistryError,
)
from actiongate_ai.core.logging_config import get_logger

logger = get_logger(__name__)


def _body(error: str) -> dict:
    return {"ok": False, "proposal": None, "error": error}


async def proposal_not_found_handler(request: Request, exc: ProposalNotFoundError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=404, content=_body(exc.message))


async def invalid_transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=409, content=_body(exc.message))


async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=422, content=_body(exc.message))


async def action_gate_error_handler(request: Request, exc: ActionGateError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=400, content=_body(exc.message))
