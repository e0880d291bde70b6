"""
Monitoring and Tracing Configuration Module.

This module provides integration with Pydantic Logfire for monitoring and
tracing of the approval-gated action service, including:
- Action proposal lifecycle (proposed, approved, executed, failed)
- LLM streaming calls
- API endpoint tracing
- Error tracking

Every ``log_*`` helper is safe to call when Logfire is disabled or not
configured: failures to emit telemetry are reported at DEBUG level and never
propagate into request handling.
"""

import logging
import os
from typing import Any, Optional

import logfire
from fastapi import FastAPI

logger = logging.getLogger(__name__)

# Logfire configuration from environment
LOGFIRE_ENABLED = os.getenv("LOGFIRE_ENABLED", "false").lower() in ("true", "1", "yes")
LOGFIRE_TOKEN = os.getenv("LOGFIRE_TOKEN", "")
LOGFIRE_PROJECT_NAME = os.getenv("LOGFIRE_PROJECT_NAME", "actiongate-ai")
LOGFIRE_ENVIRONMENT = os.getenv("LOGFIRE_ENVIRONMENT", "development")
LOGFIRE_SERVICE_NAME = os.getenv("LOGFIRE_SERVICE_NAME", "actiongate-ai-server")
LOGFIRE_SERVICE_VERSION = os.getenv("LOGFIRE_SERVICE_VERSION", "0.1.0")

# Feature flags
LOGFIRE_TRACE_SQLALCHEMY = os.getenv("LOGFIRE_TRACE_SQLALCHEMY", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_HTTPX = os.getenv("LOGFIRE_TRACE_HTTPX", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_OPENAI = os.getenv("LOGFIRE_TRACE_OPENAI", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_FASTAPI = os.getenv("LOGFIRE_TRACE_FASTAPI", "true").lower() in ("true", "1", "yes")


def initialize_logfire(app: FastAPI | None = None) -> None:
    """
    Initialize Logfire for monitoring and tracing.

    This function sets up Logfire with automatic instrumentation for:
    - SQLAlchemy database operations
    - HTTPX HTTP requests (issue tracker client)
    - OpenAI chat completion calls
    - FastAPI endpoints

    Args:
        app: FastAPI application instance for FastAPI instrumentation (optional).

    The initialization is conditional based on the LOGFIRE_ENABLED environment variable.
    """
    if not LOGFIRE_ENABLED:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return

    if not LOGFIRE_TOKEN:
        logger.warning(
            "Logfire is enabled but LOGFIRE_TOKEN is not set. "
            "Monitoring will not work. Set LOGFIRE_TOKEN to enable Logfire."
        )
        return

    try:
        logfire.configure(
            token=LOGFIRE_TOKEN,
            service_name=LOGFIRE_SERVICE_NAME,
            service_version=LOGFIRE_SERVICE_VERSION,
            environment=LOGFIRE_ENVIRONMENT,
        )

        if LOGFIRE_TRACE_SQLALCHEMY:
            try:
                logfire.instrument_sqlalchemy()
                logger.info("Logfire: SQLAlchemy instrumentation enabled")
            except Exception as e:
                logger.warning(f"Failed to instrument SQLAlchemy: {e}")

        if LOGFIRE_TRACE_HTTPX:
            try:
                logfire.instrument_httpx()
                logger.info("Logfire: HTTPX instrumentation enabled")
            except Exception as e:
                logger.warning(f"Failed to instrument HTTPX: {e}")

        if LOGFIRE_TRACE_OPENAI:
            try:
                logfire.instrument_openai()
                logger.info("Logfire: OpenAI instrumentation enabled")
            except Exception as e:
                logger.warning(f"Failed to instrument OpenAI: {e}")

        if LOGFIRE_TRACE_FASTAPI:
            try:
                if app is not None:
                    logfire.instrument_fastapi(app=app)
                    logger.info("Logfire: FastAPI instrumentation enabled")
                else:
                    logger.debug("FastAPI app instance not provided, skipping FastAPI instrumentation")
            except Exception as e:
                logger.warning(f"Failed to instrument FastAPI: {e}")

        logger.info(
            f"Logfire monitoring initialized: "
            f"project={LOGFIRE_PROJECT_NAME}, "
            f"environment={LOGFIRE_ENVIRONMENT}, "
            f"service={LOGFIRE_SERVICE_NAME}"
        )

    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)


def log_action_proposed(proposal_id: str, conversation_id: str, tool_name: str) -> None:
    """
    Log the creation of a new action proposal.

    Args:
        proposal_id: The proposal identifier
        conversation_id: The conversation the proposal belongs to
        tool_name: The write tool that was intercepted
    """
    try:
        logfire.info(
            "Action proposed",
            proposal_id=proposal_id,
            conversation_id=conversation_id,
            tool_name=tool_name,
        )
    except Exception:
        logger.debug(f"Could not log action proposal to Logfire: proposal_id={proposal_id}")


def log_action_transition(proposal_id: str, from_state: str, to_state: str) -> None:
    """
    Log a state machine transition of an action proposal.

    Args:
        proposal_id: The proposal identifier
        from_state: The state before the transition
        to_state: The state after the transition
    """
    try:
        logfire.info(
            "Action transitioned",
            proposal_id=proposal_id,
            from_state=from_state,
            to_state=to_state,
        )
    except Exception:
        logger.debug(f"Could not log action transition to Logfire: proposal_id={proposal_id}")


def log_llm_call(model: str, iterations: int, tool_calls: int, duration_ms: float) -> None:
    """
    Log one streamed conversation turn against the LLM provider.

    Args:
        model: The model name
        iterations: Number of completion rounds used by the turn
        tool_calls: Number of tool calls the model requested
        duration_ms: Wall time of the turn in milliseconds
    """
    try:
        logfire.info(
            "LLM turn completed",
            model=model,
            iterations=iterations,
            tool_calls=tool_calls,
            duration_ms=duration_ms,
        )
    except Exception:
        logger.debug(f"Could not log LLM call to Logfire: model={model}")


def log_api_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    """
    Log an API request with performance metrics.

    Args:
        method: HTTP method
        path: Request path
        status_code: HTTP status code
        duration_ms: Request duration in milliseconds
    """
    try:
        logfire.info(
            "API request completed",
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=duration_ms,
        )
    except Exception:
        logger.debug(f"Could not log API request to Logfire: {method} {path}")


def log_error(error_type: str, error_message: str, context: Optional[dict[str, Any]] = None) -> None:
    """
    Log an error with context for debugging.

    Args:
        error_type: Type of error
        error_message: Error message
        context: Additional context dictionary
    """
    try:
        logfire.error(
            f"{error_type}: {error_message}",
            **(context or {}),
        )
    except Exception:
        logger.debug(f"Could not log error to Logfire: {error_type}")
