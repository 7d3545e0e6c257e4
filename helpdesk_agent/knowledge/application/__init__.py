"""
Knowledge Application Layer
===========================

Contains:
- Services: ArticleIngestionService, KnowledgeSearchService
- Interfaces: IEmbeddingProvider, IChunkStore, IArticleRepository
- DTOs: request/response models for the knowledge API
"""

from helpdesk_agent.knowledge.application.dto import (
    IngestArticleRequest,
    IngestArticleResponse,
    KnowledgeSearchRequest,
    KnowledgeSearchResponse,
    KnowledgeHit,
)
from helpdesk_agent.knowledge.application.services import (
    IEmbeddingProvider,
    IChunkStore,
    IArticleRepository,
    IngestionResult,
    ArticleIngestionService,
    KnowledgeSearchService,
)

__all__ = [
    # DTOs
    "IngestArticleRequest",
    "IngestArticleResponse",
    "KnowledgeSearchRequest",
    "KnowledgeSearchResponse",
    "KnowledgeHit",
    # Interfaces
    "IEmbeddingProvider",
    "IChunkStore",
    "IArticleRepository",
    # Services
    "IngestionResult",
    "ArticleIngestionService",
    "KnowledgeSearchService",
]
