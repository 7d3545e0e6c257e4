"""
Ticket Domain Layer
===================

Contains:
- Entities: Profile, CatalogOption, Ticket, Assignment, HistoryEntry,
  Comment, ConversationMessage, ActivityItem, TicketDetails
- Value Objects: FieldChange, EmployeeLoad
- Domain Services: select_least_loaded

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from helpdesk_agent.tickets.domain.entities import (
    Profile,
    CatalogOption,
    Ticket,
    Assignment,
    HistoryEntry,
    Comment,
    ConversationMessage,
    ActivityItem,
    TicketDetails,
)
from helpdesk_agent.tickets.domain.value_objects import (
    FieldChange,
    EmployeeLoad,
    assignee_change,
    select_least_loaded,
)

__all__ = [
    # Entities
    "Profile",
    "CatalogOption",
    "Ticket",
    "Assignment",
    "HistoryEntry",
    "Comment",
    "ConversationMessage",
    "ActivityItem",
    "TicketDetails",
    # Value Objects & Services
    "FieldChange",
    "EmployeeLoad",
    "assignee_change",
    "select_least_loaded",
]
