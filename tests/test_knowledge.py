"""Tests for article ingestion and tiered knowledge base search."""

from typing import Dict, Iterable, List, Optional

import pytest

from helpdesk_agent.core import ResourceNotFoundException, ValidationException, VectorStoreException
from helpdesk_agent.knowledge.application import (
    ArticleIngestionService,
    IArticleRepository,
    IChunkStore,
    IEmbeddingProvider,
    KnowledgeSearchService,
)
from helpdesk_agent.knowledge.domain import ArticleChunk, KnowledgeArticle, RetrievedChunk
from helpdesk_agent.knowledge.infrastructure import (
    KnowledgeArticleModel,
    LLMEmbeddingProvider,
    SessionArticleRepository,
    SQLAlchemyArticleRepository,
    VectorChunkStore,
)


class FixedEmbeddings(IEmbeddingProvider):
    async def embed(self, text: str) -> List[float]:
        return [1.0, 0.0]


class CannedChunkStore(IChunkStore):
    """Returns prepared hits regardless of the query vector."""

    def __init__(self, hits: List[RetrievedChunk]):
        self.hits = hits
        self.public_only = None

    async def add_chunks(self, chunks: List[ArticleChunk]) -> None:
        raise NotImplementedError

    async def delete_article(self, article_id, keep_ids=None):
        raise NotImplementedError

    async def search(self, embedding, top_k, public_only=True):
        self.public_only = public_only
        return self.hits[:top_k]


class LiveArticles(IArticleRepository):
    """Every requested id exists; ids in ``hidden`` are inactive."""

    def __init__(self, hidden: Iterable[str] = ()):
        self.hidden = set(hidden)

    async def get(self, article_id: str) -> Optional[KnowledgeArticle]:
        raise NotImplementedError

    async def get_many(self, article_ids: Iterable[str]) -> Dict[str, KnowledgeArticle]:
        return {
            article_id: KnowledgeArticle(
                id=article_id, name=f"Article {article_id}", body="...",
                is_active=article_id not in self.hidden
            )
            for article_id in article_ids
        }

    async def list_all(self) -> List[KnowledgeArticle]:
        raise NotImplementedError


def _hit(article_id: str, similarity: float) -> RetrievedChunk:
    return RetrievedChunk(article_id=article_id, article_name=f"Article {article_id}", text="...", similarity=similarity)


def _search(store: IChunkStore, articles: Optional[IArticleRepository] = None) -> KnowledgeSearchService:
    return KnowledgeSearchService(
        FixedEmbeddings(), store, articles or LiveArticles(),
        top_k=3, similarity_floor=0.70, high_relevance=0.85
    )


# =============================================================================
# Search
# =============================================================================

@pytest.mark.asyncio
async def test_hits_are_floored_and_tiered():
    store = CannedChunkStore([_hit("b", 0.78), _hit("a", 0.92), _hit("c", 0.60)])
    service = _search(store)

    results = await service.search("vpn disconnects")

    assert [h.article_id for h in results.highly_relevant] == ["a"]
    assert [h.article_id for h in results.possibly_relevant] == ["b"]
    assert [h.similarity for h in results.ranked] == [0.92, 0.78]
    assert store.public_only is True

    payload = results.to_dict()
    assert payload["highly_relevant"][0] == {
        "id": "a", "name": "Article a", "relevant_chunk": "...",
        "similarity_score": 0.92, "relevance": "highly_relevant"
    }


@pytest.mark.asyncio
async def test_no_hits_above_floor_is_empty():
    store = CannedChunkStore([_hit("a", 0.69), _hit("b", 0.10)])
    service = _search(store)

    results = await service.search("printer")

    assert results.is_empty


@pytest.mark.asyncio
async def test_top_k_limits_results():
    store = CannedChunkStore([_hit(str(i), 0.99 - i * 0.01) for i in range(6)])
    service = _search(store)

    results = await service.search("anything")

    assert len(results.ranked) == 3


@pytest.mark.asyncio
async def test_hits_from_inactive_articles_are_dropped_before_top_k():
    store = CannedChunkStore([_hit("old", 0.99), _hit("x", 0.95), _hit("y", 0.90), _hit("z", 0.80), _hit("w", 0.75)])
    service = _search(store, LiveArticles(hidden={"old"}))

    results = await service.search("anything")

    assert [h.article_id for h in results.ranked] == ["x", "y", "z"]


# =============================================================================
# Ingestion (SQLite + in-memory vectors)
# =============================================================================

async def _add_article(session_maker, **fields) -> str:
    async with session_maker() as session:
        model = KnowledgeArticleModel(**fields)
        session.add(model)
        await session.commit()
        return model.id


def _ingestion(session, llm_client, vector_store) -> ArticleIngestionService:
    return ArticleIngestionService(
        SQLAlchemyArticleRepository(session),
        LLMEmbeddingProvider(llm_client),
        VectorChunkStore(vector_store),
        chunk_size=1000,
        overlap=50
    )


@pytest.mark.asyncio
async def test_reingest_overwrites_chunks_and_prunes_stale_ones(session_maker, llm_client, vector_store):
    article_id = await _add_article(session_maker, id="kb-1", name="VPN guide", body="v" * 2500)

    async with session_maker() as session:
        service = _ingestion(session, llm_client, vector_store)
        first = await service.ingest(article_id)
        second = await service.ingest(article_id)
        finer = await service.ingest(article_id, chunk_size=500, overlap=0)
        coarser = await service.ingest(article_id)

    assert (first.chunks_created, first.chunks_removed) == (3, 0)
    assert (second.chunks_created, second.chunks_removed) == (3, 0)
    assert (finer.chunks_created, finer.chunks_removed) == (5, 0)
    assert (coarser.chunks_created, coarser.chunks_removed) == (3, 2)
    assert await vector_store.get_document_count() == 3


class FailingAddStore(VectorChunkStore):
    async def add_chunks(self, chunks):
        raise VectorStoreException("write rejected")


@pytest.mark.asyncio
async def test_failed_store_keeps_previous_chunks(session_maker, llm_client, vector_store):
    article_id = await _add_article(session_maker, id="kb-1", name="VPN guide", body="v" * 2500)

    async with session_maker() as session:
        await _ingestion(session, llm_client, vector_store).ingest(article_id)
        failing = ArticleIngestionService(
            SQLAlchemyArticleRepository(session),
            LLMEmbeddingProvider(llm_client),
            FailingAddStore(vector_store),
            chunk_size=500,
            overlap=0
        )
        with pytest.raises(VectorStoreException):
            await failing.ingest(article_id)

    assert await vector_store.get_document_count() == 3


@pytest.mark.asyncio
async def test_ingest_rejects_missing_and_inactive(session_maker, llm_client, vector_store):
    inactive_id = await _add_article(session_maker, id="kb-old", name="Old", body="retired", is_active=False)
    active_id = await _add_article(session_maker, id="kb-new", name="New", body="current")

    async with session_maker() as session:
        service = _ingestion(session, llm_client, vector_store)
        with pytest.raises(ResourceNotFoundException):
            await service.ingest("kb-missing")
        with pytest.raises(ValidationException):
            await service.ingest(inactive_id)
        with pytest.raises(ValidationException):
            await service.ingest(active_id, chunk_size=10, overlap=10)


def _live_search(session_maker, llm_client, vector_store) -> KnowledgeSearchService:
    return KnowledgeSearchService(
        LLMEmbeddingProvider(llm_client), VectorChunkStore(vector_store), SessionArticleRepository(session_maker),
        top_k=3, similarity_floor=0.70, high_relevance=0.85
    )


@pytest.mark.asyncio
async def test_search_sees_only_public_articles(session_maker, llm_client, vector_store):
    body = "Restart the VPN client and sign in again."
    await _add_article(session_maker, id="kb-pub", name="VPN tips", body=body)
    await _add_article(session_maker, id="kb-priv", name="VPN internals", body=body, is_public=False)

    async with session_maker() as session:
        service = _ingestion(session, llm_client, vector_store)
        await service.ingest("kb-pub")
        await service.ingest("kb-priv")

    results = await _live_search(session_maker, llm_client, vector_store).search(body)

    assert [h.article_id for h in results.highly_relevant] == ["kb-pub"]
    assert results.highly_relevant[0].similarity == pytest.approx(1.0)


@pytest.mark.asyncio
@pytest.mark.parametrize("change", [{"is_active": False}, {"is_public": False}])
async def test_article_hidden_after_ingestion_stops_matching(session_maker, llm_client, vector_store, change):
    body = "Clear the browser cache and retry the upload."
    await _add_article(session_maker, id="kb-x", name="Upload fails", body=body)

    async with session_maker() as session:
        await _ingestion(session, llm_client, vector_store).ingest("kb-x")
        article = await session.get(KnowledgeArticleModel, "kb-x")
        for field, value in change.items():
            setattr(article, field, value)
        await session.commit()

    results = await _live_search(session_maker, llm_client, vector_store).search(body)

    assert results.is_empty
    assert await vector_store.get_document_count() == 1


@pytest.mark.asyncio
async def test_deleted_article_stops_matching(session_maker, llm_client, vector_store):
    body = "Clear the browser cache and retry the upload."
    await _add_article(session_maker, id="kb-x", name="Upload fails", body=body)

    async with session_maker() as session:
        await _ingestion(session, llm_client, vector_store).ingest("kb-x")
        await session.delete(await session.get(KnowledgeArticleModel, "kb-x"))
        await session.commit()

    results = await _live_search(session_maker, llm_client, vector_store).search(body)

    assert results.is_empty


@pytest.mark.asyncio
async def test_reindex_purges_inactive_articles(session_maker, llm_client, vector_store):
    await _add_article(session_maker, id="kb-live", name="Live", body="still relevant")
    await _add_article(session_maker, id="kb-gone", name="Gone", body="was relevant")

    async with session_maker() as session:
        await _ingestion(session, llm_client, vector_store).ingest("kb-gone")
        gone = await session.get(KnowledgeArticleModel, "kb-gone")
        gone.is_active = False
        await session.commit()

    async with session_maker() as session:
        results = await _ingestion(session, llm_client, vector_store).reindex_all()

    by_id = {r.article_id: r for r in results}
    assert by_id["kb-live"].chunks_created == 1
    assert by_id["kb-gone"].chunks_created == 0
    assert by_id["kb-gone"].chunks_removed == 1
    assert await vector_store.get_document_count() == 1
