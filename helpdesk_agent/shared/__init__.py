"""
Shared Kernel Module
====================

Shared infrastructure used across the bounded contexts (tickets,
knowledge and agent).

Architecture Pattern: Modular Monolith
- Each module (tickets, knowledge, agent) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add ticket or agent business logic to the shared kernel.
"""
