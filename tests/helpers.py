"""Scripted model decisions for driving the agent loop in tests."""
from typing import Any, Dict, List, Optional

from helpdesk_agent.agent.application import IModelGateway
from helpdesk_agent.agent.domain import ChatMessage, ModelDecision, ToolRequest


class ScriptedGateway(IModelGateway):
    """
    Model gateway that replays prepared decisions.

    Once the script runs out the last decision repeats, so a script of
    one tool-requesting decision models a model that never stops.
    """

    def __init__(self, *decisions: ModelDecision):
        self._decisions = list(decisions)
        self.calls = 0
        self.transcripts: List[List[ChatMessage]] = []

    async def decide(
        self,
        transcript: List[ChatMessage],
        declarations: List[Dict[str, Any]]
    ) -> ModelDecision:
        self.transcripts.append(list(transcript))
        decision = self._decisions[min(self.calls, len(self._decisions) - 1)]
        self.calls += 1
        return decision


def tool_call(name: str, arguments: Optional[Any] = None, call_id: Optional[str] = None) -> ToolRequest:
    return ToolRequest(id=call_id or f"call-{name}", name=name, arguments={} if arguments is None else arguments)


def act(*requests: ToolRequest) -> ModelDecision:
    return ModelDecision(content="", tool_requests=list(requests))


def reply(text: str) -> ModelDecision:
    return ModelDecision(content=text)
