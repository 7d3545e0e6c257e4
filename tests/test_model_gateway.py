"""Tests for the OpenAI-style model gateway mapping."""

import pytest

from helpdesk_agent.agent.domain import ChatMessage, ModelDecision, ToolRequest
from helpdesk_agent.agent.infrastructure import LLMModelGateway
from helpdesk_agent.infrastructure.llm import ChatCompletionResult, MockLLMClient, ToolCallResult


class RecordingLLMClient(MockLLMClient):
    def __init__(self, result: ChatCompletionResult):
        super().__init__(dimension=16)
        self.result = result
        self.kwargs = None

    async def chat_completion(self, messages, temperature=None, max_tokens=None, tools=None, operation="chat_completion"):
        self.kwargs = {"messages": messages, "tools": tools, "operation": operation}
        return self.result


def _result(content="", tool_calls=None) -> ChatCompletionResult:
    return ChatCompletionResult(
        content=content, model="test", prompt_tokens=1, completion_tokens=1,
        latency_ms=1, tool_calls=tool_calls or []
    )


@pytest.mark.asyncio
async def test_transcript_and_tools_are_mapped():
    client = RecordingLLMClient(_result(content="Hi!"))
    transcript = [
        ChatMessage.system("rules"),
        ChatMessage.human("help"),
        ChatMessage.assistant(ModelDecision(
            content="", tool_requests=[ToolRequest(id="c1", name="getStatusOptions", arguments={})]
        )),
        ChatMessage.observation("c1", "[]"),
    ]
    declaration = {"name": "getStatusOptions", "description": "d", "parameters": {"type": "object", "properties": {}}}

    decision = await LLMModelGateway(client).decide(transcript, [declaration])

    assert decision.is_final
    assert decision.content == "Hi!"
    messages = client.kwargs["messages"]
    assert [m["role"] for m in messages] == ["system", "user", "assistant", "tool"]
    assert messages[2]["tool_calls"][0]["function"] == {"name": "getStatusOptions", "arguments": "{}"}
    assert messages[3] == {"role": "tool", "tool_call_id": "c1", "content": "[]"}
    assert client.kwargs["tools"] == [{"type": "function", "function": declaration}]
    assert client.kwargs["operation"] == "agent"


@pytest.mark.asyncio
async def test_tool_call_arguments_are_decoded_when_possible():
    client = RecordingLLMClient(_result(tool_calls=[
        ToolCallResult(id="a", name="getTicketDetails", arguments='{"ticketId": "t-1"}'),
        ToolCallResult(id="b", name="getTicketDetails", arguments="not json"),
    ]))

    decision = await LLMModelGateway(client).decide([ChatMessage.human("x")], [])

    assert not decision.is_final
    assert decision.tool_requests[0].arguments == {"ticketId": "t-1"}
    assert decision.tool_requests[1].arguments == "not json"
