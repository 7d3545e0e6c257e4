"""
Ticket Domain Entities
======================

Pure Python domain entities for the ticket store.

Following Domain-Driven Design principles, these entities are free of
infrastructure concerns; repositories convert ORM rows into them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from helpdesk_agent.config import AssignmentType


@dataclass
class Profile:
    """A person known to the help desk: staff member, admin or customer."""

    user_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    job_title: Optional[str] = None
    is_active: bool = True
    is_customer: bool = False
    is_admin: bool = False

    @property
    def full_name(self) -> str:
        """First and last name joined; empty parts are skipped."""
        return " ".join(part for part in (self.first_name, self.last_name) if part).strip()

    @property
    def is_staff(self) -> bool:
        """Active, non-customer, non-admin profiles can own tickets."""
        return self.is_active and not self.is_customer and not self.is_admin

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
        }


@dataclass
class CatalogOption:
    """A status or priority entry."""

    id: str
    name: str
    is_active: bool = True
    is_counted_open: Optional[bool] = None

    def to_dict(self) -> dict:
        data = {"id": self.id, "name": self.name}
        if self.is_counted_open is not None:
            data["is_counted_open"] = self.is_counted_open
        return data


@dataclass
class Ticket:
    """
    Support ticket.

    The agent only ever changes title, description, status_id and
    priority_id; everything else is read-only from its point of view.
    """

    id: str
    title: str
    status_id: str
    priority_id: str
    creator_id: Optional[str] = None
    description: Optional[str] = None
    organization_id: Optional[str] = None
    custom_fields: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    due_date: Optional[datetime] = None


@dataclass
class Assignment:
    """Link between a ticket and the profile (or team) working it."""

    id: str
    ticket_id: str
    profile_id: Optional[str] = None
    team_id: Optional[str] = None
    assignment_type: str = AssignmentType.INDIVIDUAL
    created_at: Optional[datetime] = None


@dataclass
class HistoryEntry:
    """
    Append-only audit record.

    ``changes`` maps a field name to ``{"from": old, "to": new}``;
    assignee changes use ``{"removed": [...], "added": [...]}``.
    """

    id: str
    ticket_id: str
    action: str
    changes: Dict[str, Any]
    from_ai: bool = False
    actor_id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class Comment:
    """Ticket comment; internal comments are visible to staff only."""

    id: str
    ticket_id: str
    content: str
    is_internal: bool = False
    from_ai: bool = False
    author_id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class ConversationMessage:
    """Customer-facing message on a ticket thread."""

    id: str
    ticket_id: str
    text: str
    from_ai: bool = False
    profile_id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class ActivityItem:
    """One entry of the merged ticket timeline."""

    type: str
    date: datetime
    content: str
    actor: str
    action: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "type": self.type,
            "date": self.date.isoformat(),
            "content": self.content,
            "actor": self.actor,
        }
        if self.action is not None:
            data["action"] = self.action
        return data


@dataclass
class TicketDetails:
    """Ticket with its assignees and resolved catalog names."""

    ticket: Ticket
    status_name: Optional[str]
    priority_name: Optional[str]
    assignees: List[Profile] = field(default_factory=list)
    assignments: List[Assignment] = field(default_factory=list)

    def to_dict(self) -> dict:
        ticket = self.ticket
        by_id = {p.user_id: p for p in self.assignees}
        return {
            "id": ticket.id,
            "title": ticket.title,
            "description": ticket.description,
            "status_id": ticket.status_id,
            "priority_id": ticket.priority_id,
            "creator_id": ticket.creator_id,
            "organization_id": ticket.organization_id,
            "custom_fields": ticket.custom_fields,
            "created_at": ticket.created_at.isoformat() if ticket.created_at else None,
            "updated_at": ticket.updated_at.isoformat() if ticket.updated_at else None,
            "resolved_at": ticket.resolved_at.isoformat() if ticket.resolved_at else None,
            "due_date": ticket.due_date.isoformat() if ticket.due_date else None,
            "status": {"name": self.status_name},
            "priority": {"name": self.priority_name},
            "assignments": [
                {
                    "profile_id": a.profile_id,
                    "team_id": a.team_id,
                    "assignment_type": a.assignment_type,
                    "profile": (
                        {
                            "first_name": by_id[a.profile_id].first_name,
                            "last_name": by_id[a.profile_id].last_name,
                        }
                        if a.profile_id in by_id else None
                    ),
                }
                for a in self.assignments
            ],
        }
