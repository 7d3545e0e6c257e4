"""
Tickets Module
==============

Bounded Context for the ticket store the support agent works against.

Responsibilities:
- Typed access to profiles, status/priority catalogs, tickets,
  assignments, comments, conversation messages and history
- Least-loaded staff selection for automatic assignment
- Append-only audit trail and merged activity timeline
- Serialized read-modify-write mutations per ticket
"""
