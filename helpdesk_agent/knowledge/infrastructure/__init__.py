"""
Knowledge Infrastructure Layer
==============================

- Models: SQLAlchemy ORM model for articles
- Repositories: article data access
- External: embedding and vector store adapters
"""

from helpdesk_agent.knowledge.infrastructure.models import KnowledgeArticleModel
from helpdesk_agent.knowledge.infrastructure.repositories import (
    SessionArticleRepository,
    SQLAlchemyArticleRepository,
)
from helpdesk_agent.knowledge.infrastructure.external import (
    LLMEmbeddingProvider,
    VectorChunkStore,
)

__all__ = [
    "KnowledgeArticleModel",
    "SQLAlchemyArticleRepository",
    "SessionArticleRepository",
    "LLMEmbeddingProvider",
    "VectorChunkStore",
]
