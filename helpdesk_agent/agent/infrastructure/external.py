"""
Agent External Service Adapters
===============================

Model gateway over the shared LLM client.

Maps the transcript to OpenAI-style chat messages and the tool
declarations to function tools, then turns the completion back into a
ModelDecision.
"""

import json
from typing import Any, Dict, List

from helpdesk_agent.agent.application import IModelGateway
from helpdesk_agent.agent.domain import ChatMessage, MessageRole, ModelDecision, ToolRequest
from helpdesk_agent.infrastructure.llm import ILLMClient, ToolCallResult


def _decode_arguments(raw: str) -> Any:
    """Parsed JSON when possible, otherwise the raw text."""
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw


def _encode_message(message: ChatMessage) -> Dict[str, Any]:
    if message.role == MessageRole.TOOL:
        return {"role": "tool", "tool_call_id": message.tool_call_id, "content": message.content}

    encoded: Dict[str, Any] = {"role": message.role.value, "content": message.content}
    if message.role == MessageRole.ASSISTANT and message.tool_requests:
        encoded["tool_calls"] = [
            {
                "id": request.id,
                "type": "function",
                "function": {
                    "name": request.name,
                    "arguments": request.arguments if isinstance(request.arguments, str)
                    else json.dumps(request.arguments)
                }
            }
            for request in message.tool_requests
        ]
    return encoded


def _to_request(call: ToolCallResult) -> ToolRequest:
    return ToolRequest(id=call.id, name=call.name, arguments=_decode_arguments(call.arguments))


class LLMModelGateway(IModelGateway):
    """
    Adapter that wraps the infrastructure LLM client.

    Implements IModelGateway for any OpenAI-compatible chat API.
    """

    def __init__(self, llm_client: ILLMClient):
        self._client = llm_client

    async def decide(
        self,
        transcript: List[ChatMessage],
        declarations: List[Dict[str, Any]]
    ) -> ModelDecision:
        result = await self._client.chat_completion(
            messages=[_encode_message(message) for message in transcript],
            tools=[{"type": "function", "function": declaration} for declaration in declarations],
            operation="agent"
        )
        return ModelDecision(
            content=result.content,
            tool_requests=[_to_request(call) for call in result.tool_calls]
        )
