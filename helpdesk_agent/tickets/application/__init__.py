"""
Ticket Application Layer
========================

Contains:
- Services: queries, mutations, assignment balancing and the audit trail
- Repository interfaces and the unit of work the services run in

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from helpdesk_agent.tickets.application.services import (
    IProfileRepository,
    ICatalogRepository,
    ITicketRepository,
    IAssignmentRepository,
    IHistoryRepository,
    ICommentRepository,
    IConversationRepository,
    ITicketUnitOfWork,
    UnitOfWorkFactory,
    TicketLocks,
    MutationResult,
    AuditTrailService,
    AssignmentBalancer,
    TicketQueryService,
    TicketMutationService,
)

__all__ = [
    # Repository Interfaces
    "IProfileRepository",
    "ICatalogRepository",
    "ITicketRepository",
    "IAssignmentRepository",
    "IHistoryRepository",
    "ICommentRepository",
    "IConversationRepository",
    "ITicketUnitOfWork",
    "UnitOfWorkFactory",
    # Services
    "TicketLocks",
    "MutationResult",
    "AuditTrailService",
    "AssignmentBalancer",
    "TicketQueryService",
    "TicketMutationService",
]
