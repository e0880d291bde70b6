"""
Core utilities and configuration for ActionGate-AI.

This package provides core functionality including logging configuration,
Logfire monitoring and other shared utilities.
"""

from actiongate_ai.core.logging_config import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
