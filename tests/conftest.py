"""
Test configuration and fixtures.

Provides:
- SQLite database per test (aiosqlite file in tmp_path) with seeded
  profiles, catalog entries and tickets
- Ticket unit of work factory and service fixtures
- Clock helpers for rows whose order matters
"""
import functools
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

# Offline settings must be in place before helpdesk_agent.config is imported
os.environ["MOCK_LLM"] = "true"
os.environ["VECTOR_STORE_BACKEND"] = "memory"
os.environ["ENVIRONMENT"] = "test"
os.environ["EMBEDDING_DIMENSION"] = "16"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from helpdesk_agent.agent.application import TicketToolbox, ToolRegistry
from helpdesk_agent.infrastructure.database import build_session_maker, create_tables
from helpdesk_agent.infrastructure.llm import MockLLMClient
from helpdesk_agent.infrastructure.vectorstore import InMemoryVectorStore
from helpdesk_agent.knowledge.application import KnowledgeSearchService
from helpdesk_agent.knowledge.infrastructure import (
    LLMEmbeddingProvider,
    SessionArticleRepository,
    VectorChunkStore,
)
from helpdesk_agent.tickets.application import (
    AssignmentBalancer,
    AuditTrailService,
    TicketLocks,
    TicketMutationService,
    TicketQueryService,
)
from helpdesk_agent.tickets.infrastructure import SQLAlchemyTicketUnitOfWork
from helpdesk_agent.tickets.infrastructure.models import (
    PriorityModel,
    ProfileModel,
    StatusModel,
    TicketAssignmentModel,
    TicketModel,
)

BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


# =============================================================================
# Seed data
# =============================================================================

@dataclass
class Seed:
    """Ids of the rows every test database starts with."""
    ticket_id: str = "t-1"
    open_status: str = "st-open"
    progress_status: str = "st-progress"
    closed_status: str = "st-closed"
    archived_status: str = "st-archived"
    low_priority: str = "pr-low"
    high_priority: str = "pr-high"
    legacy_priority: str = "pr-legacy"
    alice: str = "p-alice"
    bob: str = "p-bob"
    bobby: str = "p-bobby"
    customer: str = "p-carol"
    admin: str = "p-dana"
    inactive: str = "p-eve"


async def seed_database(session_maker) -> Seed:
    seed = Seed()
    async with session_maker() as session:
        session.add_all([
            ProfileModel(user_id=seed.alice, email="alice@example.com", first_name="Alice", last_name="Anders"),
            ProfileModel(user_id=seed.bob, email="bob.smith@example.com", first_name="Bob", last_name="Smith"),
            ProfileModel(user_id=seed.bobby, email="bobby@example.com", first_name="Bobby", last_name="Tables"),
            ProfileModel(
                user_id=seed.customer, email="carol@customer.com",
                first_name="Carol", last_name="Customer", is_customer=True
            ),
            ProfileModel(user_id=seed.admin, email="dana@example.com", first_name="Dana", last_name="Admin", is_admin=True),
            ProfileModel(
                user_id=seed.inactive, email="eve@example.com",
                first_name="Eve", last_name="Gone", is_active=False
            ),
            StatusModel(id=seed.open_status, name="Open", is_counted_open=True),
            StatusModel(id=seed.progress_status, name="In Progress", is_counted_open=True),
            StatusModel(id=seed.closed_status, name="Closed", is_counted_open=False),
            StatusModel(id=seed.archived_status, name="Archived", is_active=False, is_counted_open=False),
            PriorityModel(id=seed.low_priority, name="Low"),
            PriorityModel(id=seed.high_priority, name="High"),
            PriorityModel(id=seed.legacy_priority, name="Legacy", is_active=False),
        ])
        await session.flush()

        session.add_all([
            TicketModel(
                id=seed.ticket_id, title="New ticket", description="VPN drops every hour",
                status_id=seed.open_status, priority_id=seed.low_priority,
                creator_id=seed.customer, created_at=BASE_TIME, updated_at=BASE_TIME
            ),
            TicketModel(
                id="t-2", title="Printer jam", status_id=seed.open_status,
                priority_id=seed.low_priority, created_at=BASE_TIME, updated_at=BASE_TIME
            ),
            TicketModel(
                id="t-3", title="Password reset", status_id=seed.closed_status,
                priority_id=seed.low_priority, created_at=BASE_TIME, updated_at=BASE_TIME
            ),
            TicketModel(
                id="t-4", title="Laptop slow", status_id=seed.progress_status,
                priority_id=seed.high_priority, created_at=BASE_TIME, updated_at=BASE_TIME
            ),
        ])
        await session.flush()

        # Open load: alice 2, bob 0 (his only ticket is closed), bobby 0
        session.add_all([
            TicketAssignmentModel(ticket_id="t-2", profile_id=seed.alice, created_at=BASE_TIME),
            TicketAssignmentModel(ticket_id="t-4", profile_id=seed.alice, created_at=BASE_TIME),
            TicketAssignmentModel(ticket_id="t-3", profile_id=seed.bob, created_at=BASE_TIME),
        ])
        await session.commit()
    return seed


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite database file per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'helpdesk.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest_asyncio.fixture
async def seed(session_maker) -> Seed:
    return await seed_database(session_maker)


@pytest.fixture
def uow_factory(session_maker):
    return functools.partial(SQLAlchemyTicketUnitOfWork, session_maker)


# =============================================================================
# Service Fixtures
# =============================================================================

@pytest.fixture
def audit(uow_factory) -> AuditTrailService:
    return AuditTrailService(uow_factory)


@pytest.fixture
def mutations(uow_factory, audit) -> TicketMutationService:
    return TicketMutationService(uow_factory, TicketLocks(), audit)


@pytest.fixture
def queries(uow_factory) -> TicketQueryService:
    return TicketQueryService(uow_factory)


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def llm_client() -> MockLLMClient:
    return MockLLMClient(dimension=16)


@pytest.fixture
def knowledge(session_maker, llm_client, vector_store) -> KnowledgeSearchService:
    return KnowledgeSearchService(
        LLMEmbeddingProvider(llm_client),
        VectorChunkStore(vector_store),
        SessionArticleRepository(session_maker)
    )


@pytest.fixture
def toolbox(uow_factory, queries, mutations, audit, knowledge) -> TicketToolbox:
    return TicketToolbox(
        queries=queries,
        mutations=mutations,
        balancer=AssignmentBalancer(uow_factory),
        audit=audit,
        knowledge=knowledge
    )


@pytest.fixture
def registry(toolbox) -> ToolRegistry:
    return ToolRegistry.from_toolbox(toolbox)


@pytest.fixture
def later():
    return lambda minutes: BASE_TIME + timedelta(minutes=minutes)
