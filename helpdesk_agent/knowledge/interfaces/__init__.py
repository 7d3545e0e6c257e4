"""
Knowledge Interfaces Layer
==========================

Contains:
- Controllers: FastAPI route handlers
"""

from helpdesk_agent.knowledge.interfaces.controllers import knowledge_router

__all__ = ["knowledge_router"]
