"""
Agent Domain Entities
=====================

Vocabulary of the resolution loop: tool identifiers, model decisions,
transcript messages, tool outcomes and the final result.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class ToolName(str, Enum):
    """Closed set of tools the model may call."""

    # Queries
    FIND_EMPLOYEE = "findEmployee"
    FIND_LEAST_LOADED_EMPLOYEE = "findLeastLoadedEmployee"
    GET_TICKET_DETAILS = "getTicketDetails"
    GET_STATUS_OPTIONS = "getStatusOptions"
    GET_PRIORITY_OPTIONS = "getPriorityOptions"
    SEARCH_KNOWLEDGE_BASE = "searchKnowledgeBase"
    GET_TICKET_HISTORY = "getTicketHistory"

    # Mutations
    UPDATE_TICKET_TITLE = "updateTicketTitle"
    UPDATE_TICKET_DESCRIPTION = "updateTicketDescription"
    ASSIGN_EMPLOYEE = "assignEmployee"
    UPDATE_TICKET_STATUS = "updateTicketStatus"
    ADD_INTERNAL_COMMENT = "addInternalComment"

    @classmethod
    def parse(cls, raw: Any) -> Optional["ToolName"]:
        """Exact name lookup; anything else is None."""
        try:
            return cls(raw)
        except ValueError:
            return None


class ToolKind(str, Enum):
    """Queries may run concurrently; mutations run one at a time."""

    QUERY = "query"
    MUTATION = "mutation"


class LoopState(str, Enum):
    """States of the resolution loop."""

    DELIBERATING = "deliberating"
    ACTING = "acting"
    COMPLETED = "completed"
    EXHAUSTED = "exhausted"


class MessageRole(str, Enum):
    SYSTEM = "system"
    HUMAN = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolRequest:
    """
    A tool call asked for by the model.

    ``arguments`` is the decoded JSON payload when it parsed, otherwise the
    raw text; the registry validates it either way.
    """

    id: str
    name: str
    arguments: Any


@dataclass
class ModelDecision:
    """One model response: either a final reply or tool requests."""

    content: str
    tool_requests: List[ToolRequest] = field(default_factory=list)

    @property
    def is_final(self) -> bool:
        return not self.tool_requests


@dataclass
class ChatMessage:
    """Transcript entry."""

    role: MessageRole
    content: str
    tool_requests: List[ToolRequest] = field(default_factory=list)
    tool_call_id: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def human(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.HUMAN, content=content)

    @classmethod
    def assistant(cls, decision: ModelDecision) -> "ChatMessage":
        return cls(
            role=MessageRole.ASSISTANT,
            content=decision.content,
            tool_requests=list(decision.tool_requests)
        )

    @classmethod
    def observation(cls, tool_call_id: str, content: str) -> "ChatMessage":
        return cls(role=MessageRole.TOOL, content=content, tool_call_id=tool_call_id)


class OutcomeKind(str, Enum):
    OK = "ok"
    SOFT_ERROR = "soft_error"
    HARD_ERROR = "hard_error"


@dataclass(frozen=True)
class ToolOutcome:
    """
    Result of one tool invocation.

    ok and soft_error carry text for the model; hard_error carries the
    exception that aborts the request.
    """

    kind: OutcomeKind
    text: str
    cause: Optional[BaseException] = None

    @classmethod
    def ok(cls, text: str) -> "ToolOutcome":
        return cls(kind=OutcomeKind.OK, text=text)

    @classmethod
    def soft_error(cls, text: str) -> "ToolOutcome":
        return cls(kind=OutcomeKind.SOFT_ERROR, text=text)

    @classmethod
    def hard_error(cls, cause: BaseException) -> "ToolOutcome":
        return cls(kind=OutcomeKind.HARD_ERROR, text=f"{type(cause).__name__}: {cause}", cause=cause)

    @property
    def is_hard(self) -> bool:
        return self.kind == OutcomeKind.HARD_ERROR


@dataclass(frozen=True)
class ResolutionResult:
    """Customer reply plus how the loop ended."""

    reply: str
    status: str
    round_trips: int
    tool_calls: int = 0
    replayed: bool = False
