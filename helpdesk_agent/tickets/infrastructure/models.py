"""
Ticket Infrastructure Models
============================

SQLAlchemy ORM models for the ticket store.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk_agent.config import AssignmentType
from helpdesk_agent.infrastructure.database import Base


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProfileModel(Base):
    """
    Database model for Profile entity.

    Maps to the 'profiles' table.
    """
    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    job_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Role flags; staff = active, not customer, not admin
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_customer: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class StatusModel(Base):
    """
    Ticket status catalog.

    ``is_counted_open`` marks statuses that count toward an employee's load.
    """
    __tablename__ = "statuses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_counted_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class PriorityModel(Base):
    """Ticket priority catalog."""
    __tablename__ = "priorities"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class TicketModel(Base):
    """
    Database model for Ticket entity.

    Maps to the 'tickets' table.
    """
    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status_id: Mapped[str] = mapped_column(ForeignKey("statuses.id"), nullable=False)
    priority_id: Mapped[str] = mapped_column(ForeignKey("priorities.id"), nullable=False)
    creator_id: Mapped[Optional[str]] = mapped_column(ForeignKey("profiles.user_id"), nullable=True)
    organization_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    custom_fields: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class TicketAssignmentModel(Base):
    """
    Ticket to profile (or team) assignment.

    At most one 'individual' row per ticket; reassignment updates it in place.
    """
    __tablename__ = "ticket_assignments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    ticket_id: Mapped[str] = mapped_column(ForeignKey("tickets.id"), nullable=False, index=True)
    profile_id: Mapped[Optional[str]] = mapped_column(ForeignKey("profiles.user_id"), nullable=True, index=True)
    team_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    assignment_type: Mapped[str] = mapped_column(String(20), nullable=False, default=AssignmentType.INDIVIDUAL)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class TicketHistoryModel(Base):
    """Append-only audit trail; rows are never updated."""
    __tablename__ = "ticket_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    ticket_id: Mapped[str] = mapped_column(ForeignKey("tickets.id"), nullable=False, index=True)
    actor_id: Mapped[Optional[str]] = mapped_column(ForeignKey("profiles.user_id"), nullable=True)
    from_ai: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    changes: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class TicketCommentModel(Base):
    """Ticket comments; ``is_internal`` hides them from customers."""
    __tablename__ = "ticket_comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    ticket_id: Mapped[str] = mapped_column(ForeignKey("tickets.id"), nullable=False, index=True)
    author_id: Mapped[Optional[str]] = mapped_column(ForeignKey("profiles.user_id"), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    from_ai: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class TicketConversationModel(Base):
    """Customer-facing ticket thread."""
    __tablename__ = "ticket_conversations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    ticket_id: Mapped[str] = mapped_column(ForeignKey("tickets.id"), nullable=False, index=True)
    profile_id: Mapped[Optional[str]] = mapped_column(ForeignKey("profiles.user_id"), nullable=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    from_ai: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
