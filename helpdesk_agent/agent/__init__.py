"""
Support Agent Module
====================

Bounded Context for agentic ticket resolution.

Responsibilities:
- Run the bounded deliberate/act loop between the model and the tools
- Expose a closed catalog of query and mutation tools over the ticket
  store and knowledge base
- Serve resolution requests with optional idempotent replay
"""
