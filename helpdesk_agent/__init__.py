"""
Helpdesk Agent
==============

Agentic ticket-resolution service for a customer-support ticketing system.

Bounded contexts:
- tickets: ticket store adapter, audit trail, assignment balancer
- knowledge: article chunking, embeddings and tiered similarity search
- agent: tool registry, model gateway and the resolution loop
"""

__version__ = "1.0.0"
