"""
Knowledge Domain Layer
======================

Contains:
- Entities: KnowledgeArticle, ArticleChunk, RetrievedChunk
- Value Objects: TieredResults
- Domain Services: chunk_text, relevance_tier
"""

from helpdesk_agent.knowledge.domain.entities import (
    KnowledgeArticle,
    ArticleChunk,
    RetrievedChunk,
)
from helpdesk_agent.knowledge.domain.value_objects import (
    TieredResults,
    chunk_text,
    relevance_tier,
)

__all__ = [
    "KnowledgeArticle",
    "ArticleChunk",
    "RetrievedChunk",
    "TieredResults",
    "chunk_text",
    "relevance_tier",
]
