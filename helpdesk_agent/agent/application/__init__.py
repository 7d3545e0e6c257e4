"""
Agent Application Layer
=======================

Contains:
- Tools: input models, TicketToolbox and the closed ToolRegistry
- Services: ResolutionOrchestrator, ResolutionService, ConfirmationService
- DTOs: request/response models for the agent API
"""

from helpdesk_agent.agent.application.dto import (
    ResolveRequest,
    ResolveResponse,
    ToolDeclaration,
    ConfirmationResponse,
)
from helpdesk_agent.agent.application.tools import (
    ToolSpec,
    TicketToolbox,
    ToolRegistry,
    recoverable,
)
from helpdesk_agent.agent.application.services import (
    IModelGateway,
    ResolutionOrchestrator,
    ReplyCache,
    ResolutionService,
    ConfirmationService,
)

__all__ = [
    # DTOs
    "ResolveRequest",
    "ResolveResponse",
    "ToolDeclaration",
    "ConfirmationResponse",
    # Tools
    "ToolSpec",
    "TicketToolbox",
    "ToolRegistry",
    "recoverable",
    # Services
    "IModelGateway",
    "ResolutionOrchestrator",
    "ReplyCache",
    "ResolutionService",
    "ConfirmationService",
]
