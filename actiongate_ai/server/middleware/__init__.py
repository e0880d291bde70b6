"""
Middleware modules for the ActionGate-AI server.

This package contains custom middleware for request/response tracing.
"""

from .logfire_middleware import LogfireMiddleware

__all__ = ["LogfireMiddleware"]
