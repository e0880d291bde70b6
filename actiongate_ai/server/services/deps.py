"""
ActionGate Service Dependency.

Provides the singleton ActionGateService instance for API endpoints.
"""

from typing import Annotated

from fastapi import Depends

from actiongate_ai.server.services.gateway import (
    ActionGateService,
    get_action_gate_service,
)

ActionGateDep = Annotated[ActionGateService, Depends(get_action_gate_service)]
