"""
Shared API Dependencies
=======================

FastAPI dependencies that read the long-lived clients placed on
``app.state`` at startup.
"""

from typing import AsyncGenerator

from fastapi import HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk_agent.infrastructure.llm import ILLMClient
from helpdesk_agent.infrastructure.vectorstore import IVectorStore


def require_state(request: Request, name: str, label: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=503, detail=f"{label} not available")
    return value


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Session for one request; the handler decides whether to commit."""
    session_maker = require_state(request, "session_maker", "Database")
    async with session_maker() as session:
        yield session


def get_llm_client(request: Request) -> ILLMClient:
    return require_state(request, "llm_client", "LLM client")


def get_vector_store(request: Request) -> IVectorStore:
    return require_state(request, "vector_store", "Vector store")
