"""
LLM Client Infrastructure
==========================

Wrapper for LLM providers (OpenAI, Z.AI) providing clean interface for LLM operations.

This module abstracts the LLM client implementation following the
Dependency Inversion Principle - the domain layer depends on abstractions,
not concrete implementations. Chat completions accept function-tool
declarations and surface the tool calls the model asks for.
"""

import asyncio
import hashlib
import random
import time
from typing import List, Optional
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from openai import AsyncOpenAI
from zai import ZaiClient

from helpdesk_agent.config import settings
from helpdesk_agent.core import LLMException, ConfigurationException
from helpdesk_agent.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class EmbeddingResult:
    """Result of an embedding generation."""

    def __init__(self, embedding: List[float], model: str):
        self.embedding = embedding
        self.model = model
        self.dimension = len(embedding)


@dataclass
class ToolCallResult:
    """A function call requested by the model, arguments still JSON-encoded."""
    id: str
    name: str
    arguments: str


@dataclass
class ChatCompletionResult:
    """Result of a chat completion."""
    content: str
    model: str
    prompt_tokens: int
    completion_tokens: int
    latency_ms: int
    tool_calls: List[ToolCallResult] = field(default_factory=list)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class ILLMClient(ABC):
    """
    Interface for LLM client operations.

    Following Interface Segregation Principle - only methods
    actually needed by the application are defined.
    """

    @abstractmethod
    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate embedding for text."""

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        tools: Optional[List[dict]] = None,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Generate chat completion, optionally offering function tools."""


def _extract_tool_calls(message) -> List[ToolCallResult]:
    """Convert OpenAI-style message.tool_calls into ToolCallResult items."""
    calls = getattr(message, "tool_calls", None) or []
    return [
        ToolCallResult(
            id=call.id,
            name=call.function.name,
            arguments=call.function.arguments or "{}"
        )
        for call in calls
    ]


class OpenAILLMClient(ILLMClient):
    """
    OpenAI client implementation for GPT models.

    Provides async wrapper around OpenAI SDK operations.
    """

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key or settings.openai_api_key
        if not self._api_key:
            raise ConfigurationException("OpenAI API key not configured")

        self._client = AsyncOpenAI(api_key=self._api_key)
        self._model = settings.llm_model
        self._embedding_model = settings.embedding_model

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """
        Generate embedding for text using OpenAI embedding model.

        Raises:
            LLMException: If embedding generation fails
        """
        try:
            response = await self._client.embeddings.create(
                model=self._embedding_model,
                input=text
            )
            return EmbeddingResult(
                embedding=response.data[0].embedding,
                model=self._embedding_model
            )
        except Exception as e:
            raise LLMException(f"Embedding generation failed: {str(e)}")

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        tools: Optional[List[dict]] = None,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """
        Generate chat completion using OpenAI GPT.

        Args:
            messages: Chat messages in OpenAI wire format
            temperature: Sampling temperature, settings default when None
            max_tokens: Maximum tokens to generate, settings default when None
            tools: Function tool declarations the model may call
            operation: Operation label for logs (agent, confirmation, ...)

        Raises:
            LLMException: If completion fails
        """
        start_time = time.perf_counter()

        request = {
            "model": self._model,
            "messages": messages,
            "temperature": settings.llm_temperature if temperature is None else temperature,
            "max_tokens": max_tokens or settings.llm_max_tokens,
        }
        if tools:
            request["tools"] = tools

        try:
            response = await self._client.chat.completions.create(**request)
        except Exception as e:
            raise LLMException(f"Chat completion failed: {str(e)}")

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        message = response.choices[0].message
        usage = response.usage

        result = ChatCompletionResult(
            content=message.content or "",
            model=self._model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            latency_ms=latency_ms,
            tool_calls=_extract_tool_calls(message)
        )

        logger.info(
            "LLM completion finished",
            extra={
                "operation": operation,
                "model": self._model,
                "latency_ms": latency_ms,
                "total_tokens": result.total_tokens,
                "tool_calls": len(result.tool_calls)
            }
        )
        return result


class ZAIILLMClient(ILLMClient):
    """
    Z.AI SDK client implementation for GLM models.

    The SDK is synchronous, so calls run in a worker thread to keep the
    event loop free for concurrent tool execution.
    """

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key or settings.zai_api_key
        if not self._api_key:
            raise ConfigurationException("Z.AI API key not configured")

        self._client = ZaiClient(api_key=self._api_key)
        self._model = settings.llm_model
        self._embedding_model = settings.embedding_model

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """
        Generate embedding for text using Z.AI embedding model.

        Raises:
            LLMException: If embedding generation fails
        """
        try:
            response = await asyncio.to_thread(
                self._client.embeddings.create,
                model=self._embedding_model,
                input=text
            )
            return EmbeddingResult(
                embedding=response.data[0].embedding,
                model=self._embedding_model
            )
        except Exception as e:
            raise LLMException(f"Embedding generation failed: {str(e)}")

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        tools: Optional[List[dict]] = None,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """
        Generate chat completion using GLM.

        Raises:
            LLMException: If completion fails
        """
        start_time = time.perf_counter()

        request = {
            "model": self._model,
            "messages": messages,
            "temperature": settings.llm_temperature if temperature is None else temperature,
            "max_tokens": max_tokens or settings.llm_max_tokens,
        }
        if tools:
            request["tools"] = tools

        try:
            response = await asyncio.to_thread(self._client.chat.completions.create, **request)
        except Exception as e:
            raise LLMException(f"Chat completion failed: {str(e)}")

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        message = response.choices[0].message
        content = message.content or ""

        # Z.AI doesn't always return token usage, so we estimate
        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "prompt_tokens", None) or len(str(messages))
        completion_tokens = getattr(usage, "completion_tokens", None) or len(content)

        logger.info(
            "LLM completion finished",
            extra={"operation": operation, "model": self._model, "latency_ms": latency_ms}
        )

        return ChatCompletionResult(
            content=content,
            model=self._model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            latency_ms=latency_ms,
            tool_calls=_extract_tool_calls(message)
        )


class MockLLMClient(ILLMClient):
    """
    Mock LLM client for testing.

    Returns predictable responses without calling external APIs. Never
    requests tools, so an agent loop driven by it ends after one call.
    """

    def __init__(self, reply: Optional[str] = None, dimension: Optional[int] = None):
        self._reply = reply or (
            "Hi there! 👋 Thanks for getting in touch. We've logged your request "
            "and our team will follow up shortly."
        )
        self._dimension = dimension or settings.embedding_dimension

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Deterministic pseudo-embedding derived from the text hash."""
        seed = int(hashlib.sha256(text.encode()).hexdigest()[:8], 16)
        rng = random.Random(seed)
        embedding = [rng.uniform(-1, 1) for _ in range(self._dimension)]
        return EmbeddingResult(embedding=embedding, model="mock-embedding")

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        tools: Optional[List[dict]] = None,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Return the canned reply."""
        return ChatCompletionResult(
            content=self._reply,
            model="mock-model",
            prompt_tokens=100,
            completion_tokens=len(self._reply.split()),
            latency_ms=1
        )


def create_llm_client() -> ILLMClient:
    """
    Build the configured LLM client.

    Raises:
        ConfigurationException: If the selected provider has no API key
    """
    if settings.mock_llm:
        return MockLLMClient()
    if settings.llm_provider == "zai":
        return ZAIILLMClient(settings.zai_api_key)
    return OpenAILLMClient(settings.openai_api_key)
