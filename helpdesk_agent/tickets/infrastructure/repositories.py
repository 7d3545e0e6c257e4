"""
Ticket Infrastructure Repositories
==================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
ticket store entities - and the unit of work that scopes one session.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import distinct, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from helpdesk_agent.config import AssignmentType
from helpdesk_agent.core import RepositoryException
from helpdesk_agent.tickets.application import (
    IAssignmentRepository,
    ICatalogRepository,
    ICommentRepository,
    IConversationRepository,
    IHistoryRepository,
    IProfileRepository,
    ITicketRepository,
    ITicketUnitOfWork,
)
from helpdesk_agent.tickets.domain import (
    Assignment,
    CatalogOption,
    Comment,
    ConversationMessage,
    HistoryEntry,
    Profile,
    Ticket,
)

# Fields the agent is allowed to write on a ticket
MUTABLE_TICKET_FIELDS = frozenset({"title", "description", "status_id", "priority_id"})


class SQLAlchemyProfileRepository(IProfileRepository):
    """SQLAlchemy implementation of profile repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _to_entity(model) -> Profile:
        return Profile(
            user_id=model.user_id,
            email=model.email,
            first_name=model.first_name,
            last_name=model.last_name,
            job_title=model.job_title,
            is_active=model.is_active,
            is_customer=model.is_customer,
            is_admin=model.is_admin
        )

    @staticmethod
    def _staff_filter():
        from helpdesk_agent.tickets.infrastructure.models import ProfileModel

        return (
            ProfileModel.is_active.is_(True),
            ProfileModel.is_customer.is_(False),
            ProfileModel.is_admin.is_(False),
        )

    async def get(self, user_id: str) -> Optional[Profile]:
        from helpdesk_agent.tickets.infrastructure.models import ProfileModel

        model = await self._session.get(ProfileModel, user_id)
        return self._to_entity(model) if model else None

    async def get_many(self, user_ids: Iterable[str]) -> Dict[str, Profile]:
        """Single IN query for all ids."""
        from helpdesk_agent.tickets.infrastructure.models import ProfileModel

        ids = list(set(user_ids))
        if not ids:
            return {}
        result = await self._session.execute(select(ProfileModel).where(ProfileModel.user_id.in_(ids)))
        return {m.user_id: self._to_entity(m) for m in result.scalars().all()}

    async def list_staff(self) -> List[Profile]:
        from helpdesk_agent.tickets.infrastructure.models import ProfileModel

        stmt = select(ProfileModel).where(*self._staff_filter()).order_by(ProfileModel.user_id)
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def search_staff(self, term: str, limit: int = 5) -> List[Profile]:
        """Case-insensitive substring match; LIKE wildcards in ``term`` are literal."""
        from helpdesk_agent.tickets.infrastructure.models import ProfileModel

        full_name = (
            func.coalesce(ProfileModel.first_name, "") + " " + func.coalesce(ProfileModel.last_name, "")
        )
        stmt = (
            select(ProfileModel)
            .where(*self._staff_filter())
            .where(or_(
                ProfileModel.first_name.icontains(term, autoescape=True),
                ProfileModel.last_name.icontains(term, autoescape=True),
                full_name.icontains(term, autoescape=True),
                ProfileModel.email.icontains(term, autoescape=True),
            ))
            .order_by(ProfileModel.user_id)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]


class SQLAlchemyCatalogRepository(ICatalogRepository):
    """Statuses and priorities."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_statuses(self, active_only: bool = True) -> List[CatalogOption]:
        from helpdesk_agent.tickets.infrastructure.models import StatusModel

        stmt = select(StatusModel).order_by(StatusModel.name)
        if active_only:
            stmt = stmt.where(StatusModel.is_active.is_(True))
        result = await self._session.execute(stmt)
        return [
            CatalogOption(id=m.id, name=m.name, is_active=m.is_active, is_counted_open=m.is_counted_open)
            for m in result.scalars().all()
        ]

    async def list_priorities(self, active_only: bool = True) -> List[CatalogOption]:
        from helpdesk_agent.tickets.infrastructure.models import PriorityModel

        stmt = select(PriorityModel).order_by(PriorityModel.name)
        if active_only:
            stmt = stmt.where(PriorityModel.is_active.is_(True))
        result = await self._session.execute(stmt)
        return [CatalogOption(id=m.id, name=m.name, is_active=m.is_active) for m in result.scalars().all()]

    async def get_status(self, status_id: str) -> Optional[CatalogOption]:
        from helpdesk_agent.tickets.infrastructure.models import StatusModel

        model = await self._session.get(StatusModel, status_id)
        if not model:
            return None
        return CatalogOption(
            id=model.id, name=model.name, is_active=model.is_active, is_counted_open=model.is_counted_open
        )

    async def get_priority(self, priority_id: str) -> Optional[CatalogOption]:
        from helpdesk_agent.tickets.infrastructure.models import PriorityModel

        model = await self._session.get(PriorityModel, priority_id)
        if not model:
            return None
        return CatalogOption(id=model.id, name=model.name, is_active=model.is_active)


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    ``for_update`` renders SELECT ... FOR UPDATE on PostgreSQL; SQLite
    omits the clause.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, ticket_id: str, for_update: bool = False):
        from helpdesk_agent.tickets.infrastructure.models import TicketModel

        stmt = select(TicketModel).where(TicketModel.id == ticket_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, ticket_id: str, for_update: bool = False) -> Optional[Ticket]:
        model = await self._get_model(ticket_id, for_update)
        if not model:
            return None
        return Ticket(
            id=model.id,
            title=model.title,
            description=model.description,
            status_id=model.status_id,
            priority_id=model.priority_id,
            creator_id=model.creator_id,
            organization_id=model.organization_id,
            custom_fields=dict(model.custom_fields or {}),
            created_at=model.created_at,
            updated_at=model.updated_at,
            resolved_at=model.resolved_at,
            due_date=model.due_date
        )

    async def update_fields(self, ticket_id: str, values: Dict[str, Any]) -> None:
        unknown = set(values) - MUTABLE_TICKET_FIELDS
        if unknown:
            raise RepositoryException(f"Ticket fields not writable: {sorted(unknown)}")

        model = await self._get_model(ticket_id)
        if not model:
            raise RepositoryException(f"Ticket {ticket_id} not found")

        for name, value in values.items():
            setattr(model, name, value)
        model.updated_at = datetime.now(timezone.utc)

        await self._session.flush()


class SQLAlchemyAssignmentRepository(IAssignmentRepository):
    """Ticket assignments and open-ticket load aggregation."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _to_entity(model) -> Assignment:
        return Assignment(
            id=model.id,
            ticket_id=model.ticket_id,
            profile_id=model.profile_id,
            team_id=model.team_id,
            assignment_type=model.assignment_type,
            created_at=model.created_at
        )

    async def list_for_ticket(self, ticket_id: str) -> List[Assignment]:
        from helpdesk_agent.tickets.infrastructure.models import TicketAssignmentModel

        stmt = (
            select(TicketAssignmentModel)
            .where(TicketAssignmentModel.ticket_id == ticket_id)
            .order_by(TicketAssignmentModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def _get_individual_model(self, ticket_id: str):
        from helpdesk_agent.tickets.infrastructure.models import TicketAssignmentModel

        stmt = (
            select(TicketAssignmentModel)
            .where(
                TicketAssignmentModel.ticket_id == ticket_id,
                TicketAssignmentModel.assignment_type == AssignmentType.INDIVIDUAL
            )
            .order_by(TicketAssignmentModel.created_at)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_individual(self, ticket_id: str) -> Optional[Assignment]:
        model = await self._get_individual_model(ticket_id)
        return self._to_entity(model) if model else None

    async def upsert_individual(self, ticket_id: str, profile_id: str) -> Assignment:
        from helpdesk_agent.tickets.infrastructure.models import TicketAssignmentModel

        model = await self._get_individual_model(ticket_id)
        if model:
            model.profile_id = profile_id
        else:
            model = TicketAssignmentModel(
                ticket_id=ticket_id,
                profile_id=profile_id,
                assignment_type=AssignmentType.INDIVIDUAL
            )
            self._session.add(model)

        await self._session.flush()
        return self._to_entity(model)

    async def count_open_by_profile(self) -> Dict[str, int]:
        """Distinct tickets per profile whose status is counted as open."""
        from helpdesk_agent.tickets.infrastructure.models import (
            StatusModel, TicketAssignmentModel, TicketModel
        )

        stmt = (
            select(TicketAssignmentModel.profile_id, func.count(distinct(TicketAssignmentModel.ticket_id)))
            .join(TicketModel, TicketModel.id == TicketAssignmentModel.ticket_id)
            .join(StatusModel, StatusModel.id == TicketModel.status_id)
            .where(
                StatusModel.is_counted_open.is_(True),
                TicketAssignmentModel.profile_id.is_not(None)
            )
            .group_by(TicketAssignmentModel.profile_id)
        )
        result = await self._session.execute(stmt)
        return {profile_id: int(count) for profile_id, count in result.all()}


class SQLAlchemyHistoryRepository(IHistoryRepository):
    """Append-only; there is no update or delete."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(
        self,
        ticket_id: str,
        action: str,
        changes: Dict[str, Any],
        from_ai: bool,
        actor_id: Optional[str] = None
    ) -> HistoryEntry:
        from helpdesk_agent.tickets.infrastructure.models import TicketHistoryModel

        model = TicketHistoryModel(
            ticket_id=ticket_id,
            action=action,
            changes=changes,
            from_ai=from_ai,
            actor_id=actor_id
        )
        self._session.add(model)
        await self._session.flush()

        return HistoryEntry(
            id=model.id,
            ticket_id=model.ticket_id,
            action=model.action,
            changes=model.changes,
            from_ai=model.from_ai,
            actor_id=model.actor_id,
            created_at=model.created_at
        )

    async def list_for_ticket(self, ticket_id: str) -> List[HistoryEntry]:
        from helpdesk_agent.tickets.infrastructure.models import TicketHistoryModel

        stmt = (
            select(TicketHistoryModel)
            .where(TicketHistoryModel.ticket_id == ticket_id)
            .order_by(TicketHistoryModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [
            HistoryEntry(
                id=m.id,
                ticket_id=m.ticket_id,
                action=m.action,
                changes=m.changes,
                from_ai=m.from_ai,
                actor_id=m.actor_id,
                created_at=m.created_at
            )
            for m in result.scalars().all()
        ]


class SQLAlchemyCommentRepository(ICommentRepository):
    """SQLAlchemy implementation of comment repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _to_entity(model) -> Comment:
        return Comment(
            id=model.id,
            ticket_id=model.ticket_id,
            content=model.content,
            is_internal=model.is_internal,
            from_ai=model.from_ai,
            author_id=model.author_id,
            created_at=model.created_at
        )

    async def add(
        self,
        ticket_id: str,
        content: str,
        is_internal: bool,
        from_ai: bool,
        author_id: Optional[str] = None
    ) -> Comment:
        from helpdesk_agent.tickets.infrastructure.models import TicketCommentModel

        model = TicketCommentModel(
            ticket_id=ticket_id,
            content=content,
            is_internal=is_internal,
            from_ai=from_ai,
            author_id=author_id
        )
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def list_for_ticket(self, ticket_id: str) -> List[Comment]:
        from helpdesk_agent.tickets.infrastructure.models import TicketCommentModel

        stmt = (
            select(TicketCommentModel)
            .where(TicketCommentModel.ticket_id == ticket_id)
            .order_by(TicketCommentModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]


class SQLAlchemyConversationRepository(IConversationRepository):
    """SQLAlchemy implementation of conversation repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _to_entity(model) -> ConversationMessage:
        return ConversationMessage(
            id=model.id,
            ticket_id=model.ticket_id,
            text=model.text,
            from_ai=model.from_ai,
            profile_id=model.profile_id,
            created_at=model.created_at
        )

    async def add(
        self,
        ticket_id: str,
        text: str,
        from_ai: bool,
        profile_id: Optional[str] = None
    ) -> ConversationMessage:
        from helpdesk_agent.tickets.infrastructure.models import TicketConversationModel

        model = TicketConversationModel(
            ticket_id=ticket_id,
            text=text,
            from_ai=from_ai,
            profile_id=profile_id
        )
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def list_for_ticket(self, ticket_id: str) -> List[ConversationMessage]:
        from helpdesk_agent.tickets.infrastructure.models import TicketConversationModel

        stmt = (
            select(TicketConversationModel)
            .where(TicketConversationModel.ticket_id == ticket_id)
            .order_by(TicketConversationModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]


class SQLAlchemyTicketUnitOfWork(ITicketUnitOfWork):
    """
    Unit of work over one AsyncSession.

    Repositories share the session, so everything done inside one
    ``async with`` block commits or rolls back together.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker
        self._session: Optional[AsyncSession] = None

    async def __aenter__(self) -> "SQLAlchemyTicketUnitOfWork":
        self._session = self._session_maker()
        self.profiles = SQLAlchemyProfileRepository(self._session)
        self.catalog = SQLAlchemyCatalogRepository(self._session)
        self.tickets = SQLAlchemyTicketRepository(self._session)
        self.assignments = SQLAlchemyAssignmentRepository(self._session)
        self.history = SQLAlchemyHistoryRepository(self._session)
        self.comments = SQLAlchemyCommentRepository(self._session)
        self.conversations = SQLAlchemyConversationRepository(self._session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        session = self._session
        self._session = None
        try:
            if exc_type is None:
                try:
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    raise RepositoryException(f"Ticket store commit failed: {str(e)}") from e
            else:
                await session.rollback()
        finally:
            await session.close()
