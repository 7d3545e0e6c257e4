"""
Ticket Infrastructure Layer
===========================

Infrastructure implementations for the ticket store:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer and the SQLAlchemy unit of work
"""

from helpdesk_agent.tickets.infrastructure.models import (
    ProfileModel,
    StatusModel,
    PriorityModel,
    TicketModel,
    TicketAssignmentModel,
    TicketHistoryModel,
    TicketCommentModel,
    TicketConversationModel,
)
from helpdesk_agent.tickets.infrastructure.repositories import (
    SQLAlchemyProfileRepository,
    SQLAlchemyCatalogRepository,
    SQLAlchemyTicketRepository,
    SQLAlchemyAssignmentRepository,
    SQLAlchemyHistoryRepository,
    SQLAlchemyCommentRepository,
    SQLAlchemyConversationRepository,
    SQLAlchemyTicketUnitOfWork,
)

__all__ = [
    "ProfileModel",
    "StatusModel",
    "PriorityModel",
    "TicketModel",
    "TicketAssignmentModel",
    "TicketHistoryModel",
    "TicketCommentModel",
    "TicketConversationModel",
    "SQLAlchemyProfileRepository",
    "SQLAlchemyCatalogRepository",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyAssignmentRepository",
    "SQLAlchemyHistoryRepository",
    "SQLAlchemyCommentRepository",
    "SQLAlchemyConversationRepository",
    "SQLAlchemyTicketUnitOfWork",
]
