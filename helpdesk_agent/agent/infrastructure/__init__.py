"""
Agent Infrastructure Layer
==========================

- External: model gateway over the shared LLM client
"""

from helpdesk_agent.agent.infrastructure.external import LLMModelGateway

__all__ = ["LLMModelGateway"]
