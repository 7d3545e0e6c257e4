"""
Knowledge Application Services
==============================

Ingestion (chunk, embed, replace) and tiered semantic search.

Services depend on the interfaces below; adapters over the LLM client,
the vector store and SQLAlchemy live in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from helpdesk_agent.config import RelevanceTier, settings
from helpdesk_agent.core import ResourceNotFoundException, ValidationException
from helpdesk_agent.knowledge.domain import (
    ArticleChunk,
    KnowledgeArticle,
    RetrievedChunk,
    TieredResults,
    chunk_text,
    relevance_tier,
)
from helpdesk_agent.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


# ========== Interfaces (Dependency Inversion) ==========

class IEmbeddingProvider(ABC):
    """Turns text into a vector."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Embed one piece of text."""


class IChunkStore(ABC):
    """Persistence and similarity search for article chunks."""

    @abstractmethod
    async def add_chunks(self, chunks: List[ArticleChunk]) -> None:
        """Store embedded chunks, replacing any with the same id."""

    @abstractmethod
    async def delete_article(self, article_id: str, keep_ids: Optional[Iterable[str]] = None) -> int:
        """Remove an article's chunks other than ``keep_ids``; returns how many were removed."""

    @abstractmethod
    async def search(
        self,
        embedding: List[float],
        top_k: int,
        public_only: bool = True
    ) -> List[RetrievedChunk]:
        """Most similar chunks first."""


class IArticleRepository(ABC):
    """Read access to knowledge base articles."""

    @abstractmethod
    async def get(self, article_id: str) -> Optional[KnowledgeArticle]:
        """Get an article by id."""

    @abstractmethod
    async def get_many(self, article_ids: Iterable[str]) -> Dict[str, KnowledgeArticle]:
        """Articles by id; unknown ids are left out."""

    @abstractmethod
    async def list_all(self) -> List[KnowledgeArticle]:
        """All articles, active or not, oldest first."""


# ========== Application Services ==========

@dataclass
class IngestionResult:
    """Chunk counts from one article ingestion."""

    article_id: str
    chunks_created: int
    chunks_removed: int


class ArticleIngestionService:
    """
    Re-index an article.

    New chunks are written over the old ids first and only the stale
    leftovers are deleted afterwards, so a failed embed or store never
    leaves the article without chunks.
    """

    def __init__(
        self,
        articles: IArticleRepository,
        embeddings: IEmbeddingProvider,
        store: IChunkStore,
        chunk_size: Optional[int] = None,
        overlap: Optional[int] = None
    ):
        self._articles = articles
        self._embeddings = embeddings
        self._store = store
        self._chunk_size = chunk_size or settings.chunk_size
        self._overlap = settings.chunk_overlap if overlap is None else overlap

    async def ingest(
        self,
        article_id: str,
        chunk_size: Optional[int] = None,
        overlap: Optional[int] = None
    ) -> IngestionResult:
        """
        Chunk, embed and store an article, replacing its previous chunks.

        Args:
            article_id: Article to index
            chunk_size: Characters per chunk, service default when None
            overlap: Characters shared by consecutive chunks, service default when None

        Raises:
            ResourceNotFoundException: If the article does not exist
            ValidationException: If the article is inactive or the chunking
                parameters are invalid
        """
        article = await self._articles.get(article_id)
        if article is None:
            raise ResourceNotFoundException("Knowledge article", article_id)
        if not article.is_active:
            raise ValidationException(
                f"Knowledge article {article_id} is inactive and cannot be indexed",
                {"article_id": article_id}
            )

        size = chunk_size or self._chunk_size
        ovlp = self._overlap if overlap is None else overlap
        try:
            pieces = chunk_text(article.body, size, ovlp)
        except ValueError as e:
            raise ValidationException(str(e), {"chunk_size": size, "overlap": ovlp})

        chunks = []
        with log_latency(logger, "article_embedding", article_id=article_id, chunks=len(pieces)):
            for position, piece in enumerate(pieces):
                chunks.append(ArticleChunk(
                    id=f"{article.id}:{position}",
                    article_id=article.id,
                    article_name=article.name,
                    position=position,
                    text=piece,
                    embedding=await self._embeddings.embed(piece),
                    is_public=article.is_public
                ))

        await self._store.add_chunks(chunks)
        removed = await self._store.delete_article(article.id, keep_ids=[chunk.id for chunk in chunks])

        logger.info(
            "Article indexed",
            extra={"article_id": article.id, "chunks_created": len(chunks), "chunks_removed": removed}
        )
        return IngestionResult(article_id=article.id, chunks_created=len(chunks), chunks_removed=removed)

    async def remove(self, article_id: str) -> int:
        """Drop an article's chunks from the index."""
        removed = await self._store.delete_article(article_id)
        logger.info("Article removed from index", extra={"article_id": article_id, "chunks_removed": removed})
        return removed

    async def reindex_all(self) -> List[IngestionResult]:
        """
        Re-ingest every active article and purge the chunks of inactive ones.

        Inactive articles appear in the result with ``chunks_created == 0``.
        """
        results = []
        for article in await self._articles.list_all():
            if article.is_active:
                results.append(await self.ingest(article.id))
            else:
                removed = await self.remove(article.id)
                results.append(IngestionResult(article_id=article.id, chunks_created=0, chunks_removed=removed))
        return results


class KnowledgeSearchService:
    """
    Semantic search over public, active article chunks.

    Keeps the top ``top_k`` chunks scoring at least ``similarity_floor``
    and labels each one ``highly_relevant`` (>= ``high_relevance``) or
    ``possibly_relevant``. Hits are checked against the article table,
    so an article deactivated or made private after ingestion stops
    matching without a reindex.
    """

    # Extra candidates fetched so stale chunks do not crowd out live ones
    CANDIDATE_FACTOR = 3

    def __init__(
        self,
        embeddings: IEmbeddingProvider,
        store: IChunkStore,
        articles: IArticleRepository,
        top_k: Optional[int] = None,
        similarity_floor: Optional[float] = None,
        high_relevance: Optional[float] = None
    ):
        self._embeddings = embeddings
        self._store = store
        self._articles = articles
        self._top_k = settings.kb_top_k if top_k is None else top_k
        self._floor = settings.kb_similarity_floor if similarity_floor is None else similarity_floor
        self._high = settings.kb_high_relevance if high_relevance is None else high_relevance

    async def search(self, query: str) -> TieredResults:
        embedding = await self._embeddings.embed(query)
        hits = await self._store.search(embedding, self._top_k * self.CANDIDATE_FACTOR, public_only=True)

        candidates = [hit for hit in hits if hit.similarity >= self._floor]
        live = await self._articles.get_many({hit.article_id for hit in candidates})
        visible = [
            hit for hit in candidates
            if hit.article_id in live and live[hit.article_id].is_active and live[hit.article_id].is_public
        ]
        relevant = sorted(visible, key=lambda hit: hit.similarity, reverse=True)[:self._top_k]

        results = TieredResults()
        for hit in relevant:
            hit.relevance = relevance_tier(hit.similarity, self._high)
            if hit.relevance == RelevanceTier.HIGHLY_RELEVANT:
                results.highly_relevant.append(hit)
            else:
                results.possibly_relevant.append(hit)

        logger.info(
            "Knowledge base searched",
            extra={
                "candidates": len(hits),
                "hidden": len(candidates) - len(visible),
                "highly_relevant": len(results.highly_relevant),
                "possibly_relevant": len(results.possibly_relevant)
            }
        )
        return results
