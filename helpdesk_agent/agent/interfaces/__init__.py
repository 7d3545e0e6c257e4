"""
Agent Interfaces Layer
======================

- Controllers: FastAPI routes for resolution, tool listing and confirmation
"""

from helpdesk_agent.agent.interfaces.controllers import agent_router

__all__ = ["agent_router"]
