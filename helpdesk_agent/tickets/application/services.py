"""
Ticket Application Services
===========================

Application services orchestrate ticket reads and writes and coordinate
between domain entities and repositories.

Following SOLID principles:
- Single Responsibility: queries, mutations, balancing and auditing are
  separate services
- Dependency Inversion: services depend on the repository interfaces and
  a unit-of-work factory, not on SQLAlchemy

Every mutation runs its read-modify-write inside a per-ticket critical
section and a single unit of work, so a field write and its history
entry commit together.
"""

import asyncio
import json
import weakref
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, Iterable, List, Optional

from helpdesk_agent.config import (
    ActivityType,
    HistoryAction,
    AI_ACTOR_NAME,
    UNKNOWN_ACTOR_NAME,
)
from helpdesk_agent.core import ResourceNotFoundException, ValidationException
from helpdesk_agent.shared.infrastructure.logging import get_logger
from helpdesk_agent.tickets.domain import (
    ActivityItem,
    Assignment,
    CatalogOption,
    Comment,
    ConversationMessage,
    EmployeeLoad,
    FieldChange,
    HistoryEntry,
    Profile,
    Ticket,
    TicketDetails,
    assignee_change,
    select_least_loaded,
)

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IProfileRepository(ABC):
    """Interface for profile data access."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[Profile]:
        """Get a profile by user id."""

    @abstractmethod
    async def get_many(self, user_ids: Iterable[str]) -> Dict[str, Profile]:
        """Bulk lookup keyed by user id; unknown ids are absent."""

    @abstractmethod
    async def list_staff(self) -> List[Profile]:
        """Active, non-customer, non-admin profiles ordered by user id."""

    @abstractmethod
    async def search_staff(self, term: str, limit: int = 5) -> List[Profile]:
        """Staff whose first, last or full name or email contains ``term``."""


class ICatalogRepository(ABC):
    """Interface for status and priority catalogs."""

    @abstractmethod
    async def list_statuses(self, active_only: bool = True) -> List[CatalogOption]:
        """Statuses sorted by name."""

    @abstractmethod
    async def list_priorities(self, active_only: bool = True) -> List[CatalogOption]:
        """Priorities sorted by name."""

    @abstractmethod
    async def get_status(self, status_id: str) -> Optional[CatalogOption]:
        """Get a status by id, active or not."""

    @abstractmethod
    async def get_priority(self, priority_id: str) -> Optional[CatalogOption]:
        """Get a priority by id, active or not."""


class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get(self, ticket_id: str, for_update: bool = False) -> Optional[Ticket]:
        """Get a ticket; ``for_update`` takes a row lock where supported."""

    @abstractmethod
    async def update_fields(self, ticket_id: str, values: Dict[str, Any]) -> None:
        """Write scalar fields and bump updated_at."""


class IAssignmentRepository(ABC):
    """Interface for ticket assignments."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[Assignment]:
        """All assignment rows of a ticket."""

    @abstractmethod
    async def get_individual(self, ticket_id: str) -> Optional[Assignment]:
        """The ticket's individual assignment, if any."""

    @abstractmethod
    async def upsert_individual(self, ticket_id: str, profile_id: str) -> Assignment:
        """Point the individual assignment at ``profile_id``, inserting if missing."""

    @abstractmethod
    async def count_open_by_profile(self) -> Dict[str, int]:
        """Distinct open tickets per assigned profile."""


class IHistoryRepository(ABC):
    """Interface for the append-only ticket history."""

    @abstractmethod
    async def add(
        self,
        ticket_id: str,
        action: str,
        changes: Dict[str, Any],
        from_ai: bool,
        actor_id: Optional[str] = None
    ) -> HistoryEntry:
        """Append a history entry."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[HistoryEntry]:
        """History entries of a ticket, oldest first."""


class ICommentRepository(ABC):
    """Interface for ticket comments."""

    @abstractmethod
    async def add(
        self,
        ticket_id: str,
        content: str,
        is_internal: bool,
        from_ai: bool,
        author_id: Optional[str] = None
    ) -> Comment:
        """Add a comment."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[Comment]:
        """Comments of a ticket, oldest first."""


class IConversationRepository(ABC):
    """Interface for customer conversation messages."""

    @abstractmethod
    async def add(
        self,
        ticket_id: str,
        text: str,
        from_ai: bool,
        profile_id: Optional[str] = None
    ) -> ConversationMessage:
        """Add a conversation message."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[ConversationMessage]:
        """Conversation messages of a ticket, oldest first."""


class ITicketUnitOfWork(ABC):
    """
    One transaction over the ticket store.

    Usage:
        async with uow_factory() as uow:
            ticket = await uow.tickets.get(ticket_id, for_update=True)

    Commits when the block exits normally, rolls back when it raises.
    """

    profiles: IProfileRepository
    catalog: ICatalogRepository
    tickets: ITicketRepository
    assignments: IAssignmentRepository
    history: IHistoryRepository
    comments: ICommentRepository
    conversations: IConversationRepository

    @abstractmethod
    async def __aenter__(self) -> "ITicketUnitOfWork":
        """Open the transaction."""

    @abstractmethod
    async def __aexit__(self, exc_type, exc, tb) -> None:
        """Commit or roll back, then release the connection."""


UnitOfWorkFactory = Callable[[], ITicketUnitOfWork]


# ========== Concurrency ==========

class TicketLocks:
    """
    In-process mutual exclusion keyed by ticket id.

    Locks are held weakly and disappear once no coroutine is waiting on
    them. Row locks (SELECT ... FOR UPDATE) cover other processes.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, ticket_id: str) -> asyncio.Lock:
        lock = self._locks.get(ticket_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[ticket_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, ticket_id: str) -> AsyncIterator[None]:
        lock = self._lock_for(ticket_id)
        async with lock:
            yield


# ========== Application Services ==========

@dataclass
class MutationResult:
    """Outcome of a ticket mutation, with the text reported back to the agent."""

    changed: bool
    message: str
    history: Optional[HistoryEntry] = None


class AuditTrailService:
    """
    Writes and reads the ticket audit trail.

    ``record`` is called inside the mutating unit of work; ``timeline``
    opens its own.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self._uow_factory = uow_factory

    async def record(
        self,
        uow: ITicketUnitOfWork,
        ticket_id: str,
        actor_id: Optional[str],
        from_ai: bool,
        action: str,
        diffs: Dict[str, Any]
    ) -> Optional[HistoryEntry]:
        """
        Append one history entry holding ``diffs``.

        Returns:
            The stored entry, or None when ``diffs`` is empty (nothing is written)
        """
        if not diffs:
            return None

        entry = await uow.history.add(
            ticket_id=ticket_id,
            action=action,
            changes=diffs,
            from_ai=from_ai,
            actor_id=actor_id
        )
        logger.info(
            "History entry recorded",
            extra={"ticket_id": ticket_id, "fields": sorted(diffs), "from_ai": from_ai}
        )
        return entry

    async def timeline(self, ticket_id: str) -> List[ActivityItem]:
        """
        Merge history, comments and conversation messages chronologically.

        Actor names are resolved with a single bulk profile lookup.

        Raises:
            ResourceNotFoundException: If the ticket does not exist
        """
        async with self._uow_factory() as uow:
            if await uow.tickets.get(ticket_id) is None:
                raise ResourceNotFoundException("Ticket", ticket_id)
            history = await uow.history.list_for_ticket(ticket_id)
            comments = await uow.comments.list_for_ticket(ticket_id)
            messages = await uow.conversations.list_for_ticket(ticket_id)

            actor_ids = {e.actor_id for e in history if e.actor_id}
            actor_ids |= {c.author_id for c in comments if c.author_id}
            actor_ids |= {m.profile_id for m in messages if m.profile_id}
            profiles = await uow.profiles.get_many(actor_ids) if actor_ids else {}

        def actor_name(from_ai: bool, profile_id: Optional[str]) -> str:
            if from_ai:
                return AI_ACTOR_NAME
            profile = profiles.get(profile_id) if profile_id else None
            if profile and profile.full_name:
                return profile.full_name
            return UNKNOWN_ACTOR_NAME

        items = [
            ActivityItem(
                type=ActivityType.HISTORY,
                date=entry.created_at,
                content=json.dumps(entry.changes),
                actor=actor_name(entry.from_ai, entry.actor_id),
                action=entry.action
            )
            for entry in history
        ]
        items.extend(
            ActivityItem(
                type=ActivityType.COMMENT,
                date=comment.created_at,
                content=comment.content,
                actor=actor_name(comment.from_ai, comment.author_id)
            )
            for comment in comments
        )
        items.extend(
            ActivityItem(
                type=ActivityType.CONVERSATION,
                date=message.created_at,
                content=message.text,
                actor=actor_name(message.from_ai, message.profile_id)
            )
            for message in messages
        )
        # Stable sort keeps history before comments before messages on equal timestamps
        items.sort(key=lambda item: item.date)
        return items


class AssignmentBalancer:
    """Finds the staff member with the fewest open tickets."""

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self._uow_factory = uow_factory

    async def least_loaded(self) -> Optional[EmployeeLoad]:
        async with self._uow_factory() as uow:
            counts = await uow.assignments.count_open_by_profile()
            roster = await uow.profiles.list_staff()
        return select_least_loaded(roster, counts)


class TicketQueryService:
    """Side-effect-free reads used by the agent's query tools."""

    def __init__(self, uow_factory: UnitOfWorkFactory, staff_search_limit: int = 5):
        self._uow_factory = uow_factory
        self._staff_search_limit = staff_search_limit

    async def find_staff(self, term: str) -> List[Profile]:
        async with self._uow_factory() as uow:
            return await uow.profiles.search_staff(term.strip(), limit=self._staff_search_limit)

    async def get_details(self, ticket_id: str) -> TicketDetails:
        """
        Ticket with assignments, assignee names and catalog names.

        Raises:
            ResourceNotFoundException: If the ticket does not exist
        """
        async with self._uow_factory() as uow:
            ticket = await uow.tickets.get(ticket_id)
            if ticket is None:
                raise ResourceNotFoundException("Ticket", ticket_id)

            assignments = await uow.assignments.list_for_ticket(ticket_id)
            assignee_ids = {a.profile_id for a in assignments if a.profile_id}
            profiles = await uow.profiles.get_many(assignee_ids) if assignee_ids else {}
            status = await uow.catalog.get_status(ticket.status_id)
            priority = await uow.catalog.get_priority(ticket.priority_id)

        return TicketDetails(
            ticket=ticket,
            status_name=status.name if status else None,
            priority_name=priority.name if priority else None,
            assignees=list(profiles.values()),
            assignments=assignments
        )

    async def status_options(self) -> List[CatalogOption]:
        async with self._uow_factory() as uow:
            return await uow.catalog.list_statuses(active_only=True)

    async def priority_options(self) -> List[CatalogOption]:
        async with self._uow_factory() as uow:
            return await uow.catalog.list_priorities(active_only=True)


class TicketMutationService:
    """
    Ticket writes performed on behalf of the agent (or a person).

    Each method holds the ticket's lock for its whole read-modify-write
    and suppresses writes that would not change anything.
    """

    NO_CHANGES = "No changes needed - provided values match current values or were invalid"

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        locks: TicketLocks,
        audit: AuditTrailService
    ):
        self._uow_factory = uow_factory
        self._locks = locks
        self._audit = audit

    @staticmethod
    async def _load(uow: ITicketUnitOfWork, ticket_id: str) -> Ticket:
        ticket = await uow.tickets.get(ticket_id, for_update=True)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket

    async def _update_text_field(
        self,
        ticket_id: str,
        field_name: str,
        value: str,
        changed_message: str,
        actor_id: Optional[str],
        from_ai: bool
    ) -> MutationResult:
        async with self._locks.hold(ticket_id):
            async with self._uow_factory() as uow:
                ticket = await self._load(uow, ticket_id)
                change = FieldChange(old=getattr(ticket, field_name), new=value)
                if change.is_noop:
                    return MutationResult(
                        changed=False,
                        message=f"No changes needed - ticket {field_name} already matches the provided value"
                    )

                await uow.tickets.update_fields(ticket_id, {field_name: value})
                entry = await self._audit.record(
                    uow, ticket_id, actor_id, from_ai, HistoryAction.UPDATE,
                    {field_name: change.to_dict()}
                )

        logger.info("Ticket field updated", extra={"ticket_id": ticket_id, "field": field_name})
        return MutationResult(changed=True, message=changed_message, history=entry)

    async def update_title(
        self,
        ticket_id: str,
        title: str,
        actor_id: Optional[str] = None,
        from_ai: bool = True
    ) -> MutationResult:
        return await self._update_text_field(
            ticket_id, "title", title, f"Updated ticket title to: {title}", actor_id, from_ai
        )

    async def update_description(
        self,
        ticket_id: str,
        description: str,
        actor_id: Optional[str] = None,
        from_ai: bool = True
    ) -> MutationResult:
        return await self._update_text_field(
            ticket_id, "description", description, "Updated ticket description", actor_id, from_ai
        )

    async def assign_employee(
        self,
        ticket_id: str,
        profile_id: str,
        actor_id: Optional[str] = None,
        from_ai: bool = True
    ) -> MutationResult:
        """
        Set the ticket's individual assignee.

        Re-assigning the current assignee is a no-op: no write, no history.

        Raises:
            ResourceNotFoundException: If the ticket does not exist
            ValidationException: If the profile is not active staff
        """
        async with self._locks.hold(ticket_id):
            async with self._uow_factory() as uow:
                await self._load(uow, ticket_id)

                profile = await uow.profiles.get(profile_id)
                if profile is None or not profile.is_staff:
                    raise ValidationException(
                        f"Profile {profile_id} is not an active employee and cannot be assigned",
                        {"profile_id": profile_id}
                    )

                existing = await uow.assignments.get_individual(ticket_id)
                previous = existing.profile_id if existing else None
                if previous == profile_id:
                    return MutationResult(
                        changed=False,
                        message=f"No changes needed - employee {profile_id} is already assigned to this ticket"
                    )

                await uow.assignments.upsert_individual(ticket_id, profile_id)
                entry = await self._audit.record(
                    uow, ticket_id, actor_id, from_ai, HistoryAction.UPDATE,
                    {"assignees": assignee_change(previous, profile_id)}
                )

        logger.info(
            "Ticket assigned",
            extra={"ticket_id": ticket_id, "profile_id": profile_id, "previous_profile_id": previous}
        )
        return MutationResult(
            changed=True,
            message=f"Assigned employee {profile_id} to ticket",
            history=entry
        )

    async def update_status(
        self,
        ticket_id: str,
        status_id: Optional[str] = None,
        priority_id: Optional[str] = None,
        actor_id: Optional[str] = None,
        from_ai: bool = True
    ) -> MutationResult:
        """
        Change status and/or priority.

        An id that is unknown or inactive skips only its own field and is
        explained in the result message. When nothing effectively changes
        no write and no history entry happen.

        Raises:
            ResourceNotFoundException: If the ticket does not exist
        """
        notes: List[str] = []

        async with self._locks.hold(ticket_id):
            async with self._uow_factory() as uow:
                ticket = await self._load(uow, ticket_id)
                diffs: Dict[str, Any] = {}

                if status_id:
                    status = await uow.catalog.get_status(status_id)
                    if status is None or not status.is_active:
                        notes.append(f"Invalid or inactive status ID provided: {status_id}. Status not updated.")
                    elif status_id != ticket.status_id:
                        diffs["status_id"] = FieldChange(ticket.status_id, status_id).to_dict()

                if priority_id:
                    priority = await uow.catalog.get_priority(priority_id)
                    if priority is None or not priority.is_active:
                        notes.append(f"Invalid or inactive priority ID provided: {priority_id}. Priority not updated.")
                    elif priority_id != ticket.priority_id:
                        diffs["priority_id"] = FieldChange(ticket.priority_id, priority_id).to_dict()

                if not diffs:
                    return MutationResult(changed=False, message=" ".join(notes + [self.NO_CHANGES]))

                await uow.tickets.update_fields(
                    ticket_id, {name: change["to"] for name, change in diffs.items()}
                )
                entry = await self._audit.record(
                    uow, ticket_id, actor_id, from_ai, HistoryAction.UPDATE, diffs
                )

        updated = [label for key, label in (("status_id", "status"), ("priority_id", "priority")) if key in diffs]
        logger.info("Ticket status updated", extra={"ticket_id": ticket_id, "fields": updated})
        message = f"Successfully updated ticket {' and '.join(updated)}"
        return MutationResult(changed=True, message=" ".join(notes + [message]), history=entry)

    async def add_internal_comment(
        self,
        ticket_id: str,
        content: str,
        author_id: Optional[str] = None,
        from_ai: bool = True
    ) -> MutationResult:
        """Add a staff-only comment. Comments are not mirrored into history."""
        async with self._locks.hold(ticket_id):
            async with self._uow_factory() as uow:
                await self._load(uow, ticket_id)
                await uow.comments.add(
                    ticket_id=ticket_id,
                    content=content,
                    is_internal=True,
                    from_ai=from_ai,
                    author_id=author_id
                )
        return MutationResult(changed=True, message="Added internal comment to ticket")

    async def add_conversation_message(
        self,
        ticket_id: str,
        text: str,
        profile_id: Optional[str] = None,
        from_ai: bool = True
    ) -> ConversationMessage:
        """
        Append a customer-facing message to the ticket thread.

        Raises:
            ResourceNotFoundException: If the ticket does not exist
        """
        async with self._uow_factory() as uow:
            if await uow.tickets.get(ticket_id) is None:
                raise ResourceNotFoundException("Ticket", ticket_id)
            return await uow.conversations.add(
                ticket_id=ticket_id,
                text=text,
                from_ai=from_ai,
                profile_id=profile_id
            )
