"""
Helpdesk Agent - Main Application
=================================

AI agent that works customer support tickets.

Modules:
- Agent: bounded model/tool loop that updates tickets and drafts the reply
- Tickets: ticket store, assignment balancing and the audit trail
- Knowledge: article chunking, embedding and tiered semantic search

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, LLM, vector store
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Configuration
from helpdesk_agent.config import settings

# Infrastructure
from helpdesk_agent.infrastructure.database import (
    close_database,
    create_tables,
    get_session_maker,
    init_database,
)
from helpdesk_agent.infrastructure.llm import ILLMClient, create_llm_client
from helpdesk_agent.infrastructure.vectorstore import IVectorStore, create_vector_store

# Module Routers
from helpdesk_agent.agent.application import ReplyCache
from helpdesk_agent.agent.interfaces import agent_router
from helpdesk_agent.knowledge.interfaces import knowledge_router
from helpdesk_agent.tickets.application import TicketLocks

# Shared
from helpdesk_agent.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    global_exception_handler,
    validation_exception_handler,
)
from helpdesk_agent.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


def configure_app_state(
    app: FastAPI,
    *,
    session_maker: Optional[async_sessionmaker[AsyncSession]],
    llm_client: Optional[ILLMClient],
    vector_store: Optional[IVectorStore]
) -> None:
    """Attach the long-lived objects the request dependencies read."""
    app.state.session_maker = session_maker
    app.state.llm_client = llm_client
    app.state.vector_store = vector_store
    app.state.ticket_locks = TicketLocks()
    app.state.reply_cache = ReplyCache(settings.agent_idempotency_cache_size)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Initialize LLM client
    4. Initialize vector store

    Each dependency that fails leaves the service running in degraded
    mode; the endpoints needing it answer 503.

    SHUTDOWN:
    1. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Helpdesk Agent", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()
    try:
        await create_tables()
    except Exception as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")

    logger.info("Initializing LLM client", extra={"provider": settings.llm_provider, "mock": settings.mock_llm})
    try:
        llm_client = create_llm_client()
    except Exception as e:
        logger.warning(f"LLM client initialization failed: {e}")
        llm_client = None

    logger.info("Initializing vector store", extra={"backend": settings.vector_store_backend})
    try:
        vector_store = create_vector_store()
        await vector_store.initialize()
    except Exception as e:
        logger.warning(f"Vector store not available: {e}")
        vector_store = None

    configure_app_state(
        app,
        session_maker=get_session_maker(),
        llm_client=llm_client,
        vector_store=vector_store
    )

    logger.info("Helpdesk Agent started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Helpdesk Agent")
    await close_database()
    logger.info("Helpdesk Agent shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Helpdesk Agent API",
    description="""
    ## AI Agent for Customer Support Tickets

    ---

    ### 🤖 Agent Module

    **Endpoints:**
    - `POST /agent/resolve` - Work a ticket and draft the customer reply
    - `GET /agent/tools` - Tool declarations offered to the model
    - `POST /agent/confirmation` - Check that the model responds

    **Features:**
    - Bounded model/tool loop with a fallback reply
    - Concurrent query tools, serialized per-ticket mutations
    - Audit trail for every ticket change
    - Idempotent retries with `requestId`

    ---

    ### 📚 Knowledge Module

    **Endpoints:**
    - `POST /knowledge/articles/{id}/ingest` - Chunk, embed and index an article
    - `POST /knowledge/search` - Tiered semantic search over public articles

    ---
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(agent_router)
app.include_router(knowledge_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports database, LLM client and vector store availability.
    """
    state = request.app.state
    checks = {
        "database": "configured" if getattr(state, "session_maker", None) else "not_configured",
        "llm_client": "available" if getattr(state, "llm_client", None) else "not_configured",
        "vector_store": "not_configured"
    }

    vector_store = getattr(state, "vector_store", None)
    if vector_store is not None:
        try:
            count = await vector_store.get_document_count()
            checks["vector_store"] = f"available ({count} documents)"
        except Exception as e:
            checks["vector_store"] = f"error: {str(e)}"

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Helpdesk Agent",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "agent": {
                "prefix": "/agent",
                "endpoints": [
                    "POST /agent/resolve - Work a ticket",
                    "GET /agent/tools - List tool declarations",
                    "POST /agent/confirmation - Model health check"
                ]
            },
            "knowledge": {
                "prefix": "/knowledge",
                "endpoints": [
                    "POST /knowledge/articles/{id}/ingest - Index an article",
                    "POST /knowledge/search - Search articles"
                ]
            }
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helpdesk_agent.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development"
    )
