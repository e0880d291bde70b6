"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS,
Logfire tracing), registers exception handlers and includes all API routers.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from actiongate_ai.core.logging_config import get_logger, setup_logging
from actiongate_ai.core.monitoring import initialize_logfire

from .api.v1 import actions, chat, health
from .core import constant
from .core.config import settings
from .core.database import init_db
from .exception_handlers import setup_exception_handlers
from .middleware import LogfireMiddleware
from .services.gateway import shutdown_action_gate_service

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Creates the database tables on startup and closes the Linear client on shutdown.
    """
    try:
        logger.info("Starting up ActionGate-AI Server...")
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    logger.info("Shutting down ActionGate-AI Server...")
    await shutdown_action_gate_service()


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    ActionGate-AI Server API

    A chat assistant for Linear whose write actions are never executed directly:
    each one is proposed as an approval card and runs only after the user approves it.
    """,
    version=constant.VERSION,
    openapi_url=f"{constant.API_V1_STR}/openapi.json",
    docs_url=f"{constant.API_V1_STR}/docs",
    redoc_url=f"{constant.API_V1_STR}/redoc",
    lifespan=lifespan,
)

cors = settings.cors
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors.origins,
    allow_credentials=cors.allow_credentials,
    allow_methods=cors.allow_methods,
    allow_headers=cors.allow_headers,
    expose_headers=["X-Conversation-Id"],
)
app.add_middleware(LogfireMiddleware)

setup_exception_handlers(app)

app.include_router(health.router, tags=["health"])
app.include_router(chat.router, prefix=f"{constant.API_V1_STR}/chat", tags=["chat"])
app.include_router(actions.router, prefix=f"{constant.API_V1_STR}/actions", tags=["actions"])

initialize_logfire(app)
