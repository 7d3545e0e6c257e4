"""
Agent Domain Layer
==================

Contains:
- Entities: ToolName, ToolKind, ToolRequest, ModelDecision, ChatMessage,
  ToolOutcome, ResolutionResult
- Prompts: AgentPromptBuilder

This layer has no dependencies on infrastructure - pure Python.
"""

from helpdesk_agent.agent.domain.entities import (
    ToolName,
    ToolKind,
    LoopState,
    MessageRole,
    ToolRequest,
    ModelDecision,
    ChatMessage,
    OutcomeKind,
    ToolOutcome,
    ResolutionResult,
)
from helpdesk_agent.agent.domain.prompts import AgentPromptBuilder

__all__ = [
    "ToolName",
    "ToolKind",
    "LoopState",
    "MessageRole",
    "ToolRequest",
    "ModelDecision",
    "ChatMessage",
    "OutcomeKind",
    "ToolOutcome",
    "ResolutionResult",
    "AgentPromptBuilder",
]
