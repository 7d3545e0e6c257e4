"""
Agent Controllers (API Routes)
==============================

FastAPI routes for ticket resolution.

Services are assembled per request from the long-lived objects on
``app.state``: the session maker, LLM client, vector store, ticket
locks and reply cache.
"""

import functools
from typing import List

from fastapi import APIRouter, Depends, Request

from helpdesk_agent.agent.application import (
    ConfirmationResponse,
    ConfirmationService,
    ResolutionOrchestrator,
    ResolutionService,
    ResolveRequest,
    ResolveResponse,
    TicketToolbox,
    ToolDeclaration,
    ToolRegistry,
)
from helpdesk_agent.agent.domain import AgentPromptBuilder
from helpdesk_agent.agent.infrastructure import LLMModelGateway
from helpdesk_agent.config import settings
from helpdesk_agent.infrastructure.llm import ILLMClient
from helpdesk_agent.infrastructure.vectorstore import IVectorStore
from helpdesk_agent.knowledge.application import KnowledgeSearchService
from helpdesk_agent.knowledge.infrastructure import (
    LLMEmbeddingProvider,
    SessionArticleRepository,
    VectorChunkStore,
)
from helpdesk_agent.shared.api.dependencies import require_state, get_llm_client, get_vector_store
from helpdesk_agent.shared.api.middleware import error_response
from helpdesk_agent.shared.infrastructure.logging import get_context_logger
from helpdesk_agent.tickets.application import (
    AssignmentBalancer,
    AuditTrailService,
    TicketMutationService,
    TicketQueryService,
    UnitOfWorkFactory,
)
from helpdesk_agent.tickets.infrastructure import SQLAlchemyTicketUnitOfWork

router = APIRouter(prefix="/agent", tags=["Agent"])


# ========== Dependencies ==========

def get_uow_factory(request: Request) -> UnitOfWorkFactory:
    session_maker = require_state(request, "session_maker", "Database")
    return functools.partial(SQLAlchemyTicketUnitOfWork, session_maker)


def get_mutation_service(
    request: Request,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)
) -> TicketMutationService:
    locks = require_state(request, "ticket_locks", "Ticket locks")
    return TicketMutationService(uow_factory, locks, AuditTrailService(uow_factory))


def get_tool_registry(
    request: Request,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    mutations: TicketMutationService = Depends(get_mutation_service),
    llm_client: ILLMClient = Depends(get_llm_client),
    vector_store: IVectorStore = Depends(get_vector_store)
) -> ToolRegistry:
    toolbox = TicketToolbox(
        queries=TicketQueryService(uow_factory),
        mutations=mutations,
        balancer=AssignmentBalancer(uow_factory),
        audit=AuditTrailService(uow_factory),
        knowledge=KnowledgeSearchService(
            LLMEmbeddingProvider(llm_client),
            VectorChunkStore(vector_store),
            SessionArticleRepository(require_state(request, "session_maker", "Database"))
        )
    )
    return ToolRegistry.from_toolbox(toolbox)


def get_resolution_service(
    request: Request,
    registry: ToolRegistry = Depends(get_tool_registry),
    mutations: TicketMutationService = Depends(get_mutation_service),
    llm_client: ILLMClient = Depends(get_llm_client)
) -> ResolutionService:
    orchestrator = ResolutionOrchestrator(
        gateway=LLMModelGateway(llm_client),
        registry=registry,
        prompt_builder=AgentPromptBuilder(settings.agent_name)
    )
    return ResolutionService(orchestrator, mutations, require_state(request, "reply_cache", "Reply cache"))


# ========== Route Handlers ==========

@router.post(
    "/resolve",
    response_model=ResolveResponse,
    summary="Handle a customer message for a ticket",
    description="""
    Runs the agent over the ticket: it gathers context with query tools,
    applies updates with mutation tools and returns the reply to send to
    the customer.

    **Example Request**:
    ```json
    {
        "ticketId": "6f1c2e0a-...",
        "userMessage": "My VPN keeps disconnecting, can Robert look at it?",
        "requestId": "msg-8812"
    }
    ```

    `status` is `exhausted` when the agent ran out of round trips; the
    output is then a generic fallback reply.
    """
)
async def resolve_ticket(
    payload: ResolveRequest,
    request: Request,
    service: ResolutionService = Depends(get_resolution_service)
):
    logger = get_context_logger(__name__, getattr(request.state, "correlation_id", None))
    logger.info("Resolving ticket", extra={"ticket_id": payload.ticket_id, "request_id": payload.request_id})

    try:
        result = await service.resolve(payload.ticket_id, payload.user_message, request_id=payload.request_id)
    except Exception as e:
        logger.error(
            "Ticket resolution failed",
            extra={"ticket_id": payload.ticket_id, "error_type": type(e).__name__, "error": str(e)}
        )
        return error_response(e)

    return ResolveResponse(
        output=result.reply,
        status=result.status,
        round_trips=result.round_trips,
        replayed=result.replayed
    )


@router.get(
    "/tools",
    response_model=List[ToolDeclaration],
    summary="List the tools offered to the model"
)
async def list_tools(registry: ToolRegistry = Depends(get_tool_registry)):
    return [ToolDeclaration(**declaration) for declaration in registry.declarations()]


@router.post(
    "/confirmation",
    response_model=ConfirmationResponse,
    summary="Check that the model responds"
)
async def confirm_ai(
    request: Request,
    llm_client: ILLMClient = Depends(get_llm_client)
):
    logger = get_context_logger(__name__, getattr(request.state, "correlation_id", None))
    try:
        result = await ConfirmationService(llm_client).confirm()
    except Exception as e:
        logger.error("AI confirmation failed", extra={"error_type": type(e).__name__, "error": str(e)})
        return error_response(e)
    return ConfirmationResponse(**result)


# Export router for inclusion in main app
agent_router = router
