"""
Agent Application Services
==========================

- ResolutionOrchestrator: bounded deliberate/act loop over the model
  gateway and the tool registry
- ResolutionService: per-request wrapper adding idempotent replay and
  reply recording
- ConfirmationService: single tool-less call proving the model answers
"""

import asyncio
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from helpdesk_agent.agent.application.tools import ToolRegistry
from helpdesk_agent.agent.domain import (
    AgentPromptBuilder,
    ChatMessage,
    LoopState,
    ModelDecision,
    ResolutionResult,
    ToolKind,
    ToolOutcome,
    ToolRequest,
)
from helpdesk_agent.config import ResolutionStatus, settings
from helpdesk_agent.core import ResourceNotFoundException
from helpdesk_agent.infrastructure.llm import ILLMClient
from helpdesk_agent.shared.infrastructure.logging import get_logger, log_latency
from helpdesk_agent.tickets.application import TicketMutationService

logger = get_logger(__name__)


# ========== Interfaces (Dependency Inversion) ==========

class IModelGateway(ABC):
    """The model deciding what to do next."""

    @abstractmethod
    async def decide(
        self,
        transcript: List[ChatMessage],
        declarations: List[Dict[str, Any]]
    ) -> ModelDecision:
        """
        Ask the model for its next step.

        Raises:
            LLMException: If the model call fails
        """


# ========== Orchestration ==========

class ResolutionOrchestrator:
    """
    Runs the model/tool loop for one ticket.

    Every model response with tool requests costs one round trip. Once
    ``max_round_trips`` have been spent, a further tool request ends the
    loop in EXHAUSTED with the fallback reply. Hard tool errors and model
    failures propagate; committed mutations are never rolled back.
    """

    def __init__(
        self,
        gateway: IModelGateway,
        registry: ToolRegistry,
        prompt_builder: AgentPromptBuilder,
        max_round_trips: Optional[int] = None,
        fallback_reply: Optional[str] = None
    ):
        self._gateway = gateway
        self._registry = registry
        self._prompts = prompt_builder
        self._max_round_trips = settings.agent_max_round_trips if max_round_trips is None else max_round_trips
        self._fallback_reply = fallback_reply or settings.agent_fallback_reply

    async def resolve(self, ticket_id: str, customer_message: str) -> ResolutionResult:
        transcript = self._prompts.initial_transcript(ticket_id, customer_message)
        declarations = self._registry.declarations()
        round_trips = 0
        tool_calls = 0
        state = LoopState.DELIBERATING

        while True:
            decision = await self._gateway.decide(transcript, declarations)

            if decision.is_final:
                state = LoopState.COMPLETED
                logger.info(
                    "Ticket resolution completed",
                    extra={"ticket_id": ticket_id, "round_trips": round_trips, "tool_calls": tool_calls}
                )
                return ResolutionResult(
                    reply=decision.content or self._fallback_reply,
                    status=ResolutionStatus.COMPLETED,
                    round_trips=round_trips,
                    tool_calls=tool_calls
                )

            if round_trips >= self._max_round_trips:
                state = LoopState.EXHAUSTED
                logger.error(
                    "Agent loop exhausted its round trips",
                    extra={
                        "alert": "agent_loop_exhausted",
                        "ticket_id": ticket_id,
                        "round_trips": round_trips,
                        "pending_tools": [request.name for request in decision.tool_requests]
                    }
                )
                return ResolutionResult(
                    reply=self._fallback_reply,
                    status=ResolutionStatus.EXHAUSTED,
                    round_trips=round_trips,
                    tool_calls=tool_calls
                )

            state = LoopState.ACTING
            outcomes = await self._act(decision.tool_requests)
            round_trips += 1
            tool_calls += len(outcomes)

            transcript.append(ChatMessage.assistant(decision))
            for request, outcome in zip(decision.tool_requests, outcomes):
                transcript.append(ChatMessage.observation(request.id, outcome.text))
            state = LoopState.DELIBERATING

            logger.debug(
                "Round trip finished",
                extra={"ticket_id": ticket_id, "round_trip": round_trips, "state": state.value}
            )

    async def _act(self, requests: List[ToolRequest]) -> List[ToolOutcome]:
        """
        Run tools in request order. Consecutive queries (and unknown names)
        run concurrently; each mutation waits for everything requested
        before it and runs alone.
        """
        outcomes: List[ToolOutcome] = []
        batch: List[ToolRequest] = []

        for request in requests:
            if self._registry.kind_of(request.name) != ToolKind.MUTATION:
                batch.append(request)
                continue
            outcomes.extend(await self._run_queries(batch))
            batch = []
            outcome = await self._registry.invoke(request)
            self._raise_if_hard(outcome)
            outcomes.append(outcome)

        outcomes.extend(await self._run_queries(batch))
        return outcomes

    async def _run_queries(self, batch: List[ToolRequest]) -> List[ToolOutcome]:
        results = await asyncio.gather(*(self._registry.invoke(request) for request in batch))
        for outcome in results:
            self._raise_if_hard(outcome)
        return list(results)

    @staticmethod
    def _raise_if_hard(outcome: ToolOutcome) -> None:
        if outcome.is_hard:
            raise outcome.cause


class ReplyCache:
    """Bounded LRU of completed results keyed by ticket and request id."""

    def __init__(self, max_size: Optional[int] = None):
        self._max_size = settings.agent_idempotency_cache_size if max_size is None else max_size
        self._items: "OrderedDict[str, ResolutionResult]" = OrderedDict()

    @staticmethod
    def key(ticket_id: str, request_id: str) -> str:
        return f"{ticket_id}:{request_id}"

    def get(self, key: str) -> Optional[ResolutionResult]:
        result = self._items.get(key)
        if result is not None:
            self._items.move_to_end(key)
        return result

    def put(self, key: str, result: ResolutionResult) -> None:
        self._items[key] = result
        self._items.move_to_end(key)
        while len(self._items) > self._max_size:
            self._items.popitem(last=False)

    def __len__(self) -> int:
        return len(self._items)


class ResolutionService:
    """Request-level entry point for ticket resolution."""

    def __init__(
        self,
        orchestrator: ResolutionOrchestrator,
        mutations: TicketMutationService,
        cache: ReplyCache,
        record_replies: Optional[bool] = None
    ):
        self._orchestrator = orchestrator
        self._mutations = mutations
        self._cache = cache
        self._record_replies = settings.agent_record_replies if record_replies is None else record_replies

    async def resolve(
        self,
        ticket_id: str,
        customer_message: str,
        request_id: Optional[str] = None
    ) -> ResolutionResult:
        """
        Resolve a ticket, replaying the cached reply for a repeated request id.

        Only completed results are cached. Concurrent requests with the
        same id are not deduplicated.
        """
        key = ReplyCache.key(ticket_id, request_id) if request_id else None
        if key:
            cached = self._cache.get(key)
            if cached is not None:
                logger.info("Replaying cached resolution", extra={"ticket_id": ticket_id, "request_id": request_id})
                return ResolutionResult(
                    reply=cached.reply,
                    status=cached.status,
                    round_trips=cached.round_trips,
                    tool_calls=cached.tool_calls,
                    replayed=True
                )

        with log_latency(logger, "ticket_resolution", ticket_id=ticket_id):
            result = await self._orchestrator.resolve(ticket_id, customer_message)

        if result.status == ResolutionStatus.COMPLETED:
            if self._record_replies:
                await self._record(ticket_id, result.reply)
            if key:
                self._cache.put(key, result)

        return result

    async def _record(self, ticket_id: str, reply: str) -> None:
        try:
            await self._mutations.add_conversation_message(ticket_id, reply, from_ai=True)
        except ResourceNotFoundException:
            logger.warning("Reply not recorded, ticket not found", extra={"ticket_id": ticket_id})


# ========== Confirmation ==========

CONFIRMATION_PROMPT = (
    "If you can read this message, confirm it in the voice of a silly circus clown. "
    "Keep it short, funny and full of emojis."
)


class ConfirmationService:
    """Checks the model end to end with one tool-less completion."""

    STATUS = "AI system is functioning correctly"

    def __init__(self, llm_client: ILLMClient):
        self._llm = llm_client

    async def confirm(self) -> Dict[str, Any]:
        """
        Raises:
            LLMException: If the model call fails
        """
        result = await self._llm.chat_completion(
            messages=[{"role": "user", "content": CONFIRMATION_PROMPT}],
            operation="confirmation"
        )
        return {"success": True, "message": result.content, "status": self.STATUS}
