"""
ActionGate-AI Server Package.

This package contains the web server for the ActionGate-AI chat assistant.
It exposes the streaming chat endpoint, the action decision endpoints and
conversation management on top of ``actiongate_ai.agent_core``.

Subpackages:
    api: FastAPI route definitions and endpoint logic.
    core: Configuration, constants and database connections.
    exception_handlers: Mapping of core errors to HTTP responses.
    middleware: Request tracing with Logfire.
    schemas: Pydantic schemas for API request/response validation.
    services: Application wiring of the agent core (singleton service).
"""
