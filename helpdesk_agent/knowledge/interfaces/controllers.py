"""
Knowledge Controllers (API Routes)
==================================

FastAPI routes for knowledge base indexing and search.

Controllers delegate to application services.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk_agent.core import ResourceNotFoundException, ValidationException
from helpdesk_agent.infrastructure.llm import ILLMClient
from helpdesk_agent.infrastructure.vectorstore import IVectorStore
from helpdesk_agent.knowledge.application import (
    ArticleIngestionService,
    IngestArticleRequest,
    IngestArticleResponse,
    KnowledgeSearchRequest,
    KnowledgeSearchResponse,
    KnowledgeSearchService,
)
from helpdesk_agent.knowledge.infrastructure import (
    LLMEmbeddingProvider,
    SQLAlchemyArticleRepository,
    VectorChunkStore,
)
from helpdesk_agent.shared.api.dependencies import get_db_session, get_llm_client, get_vector_store
from helpdesk_agent.shared.infrastructure.logging import get_context_logger

router = APIRouter(prefix="/knowledge", tags=["Knowledge Base"])


# ========== Dependencies ==========

def get_ingestion_service(
    session: AsyncSession = Depends(get_db_session),
    llm_client: ILLMClient = Depends(get_llm_client),
    vector_store: IVectorStore = Depends(get_vector_store)
) -> ArticleIngestionService:
    return ArticleIngestionService(
        SQLAlchemyArticleRepository(session),
        LLMEmbeddingProvider(llm_client),
        VectorChunkStore(vector_store)
    )


def get_search_service(
    session: AsyncSession = Depends(get_db_session),
    llm_client: ILLMClient = Depends(get_llm_client),
    vector_store: IVectorStore = Depends(get_vector_store)
) -> KnowledgeSearchService:
    return KnowledgeSearchService(
        LLMEmbeddingProvider(llm_client),
        VectorChunkStore(vector_store),
        SQLAlchemyArticleRepository(session)
    )


# ========== Route Handlers ==========

@router.post(
    "/articles/{article_id}/ingest",
    response_model=IngestArticleResponse,
    summary="Chunk, embed and index one article",
    description="""
    Splits the article body into overlapping chunks, embeds each chunk and
    replaces the article's previous chunks in the vector store.

    **Example Request**:
    ```json
    {"chunkSize": 1000, "overlap": 50}
    ```
    """
)
async def ingest_article(
    article_id: str,
    request: Request,
    payload: Optional[IngestArticleRequest] = None,
    service: ArticleIngestionService = Depends(get_ingestion_service)
):
    logger = get_context_logger(__name__, getattr(request.state, "correlation_id", None))
    payload = payload or IngestArticleRequest()

    try:
        result = await service.ingest(article_id, chunk_size=payload.chunk_size, overlap=payload.overlap)
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ValidationException as e:
        raise HTTPException(status_code=400, detail=e.message)

    logger.info("Article ingestion finished", extra={"article_id": article_id, "chunks": result.chunks_created})
    return IngestArticleResponse(
        article_id=result.article_id,
        chunks_created=result.chunks_created,
        chunks_removed=result.chunks_removed
    )


@router.post(
    "/search",
    response_model=KnowledgeSearchResponse,
    summary="Semantic search over public, active articles",
    description="""
    Returns up to three chunks scoring at least 0.70 cosine similarity,
    grouped into `highly_relevant` (>= 0.85) and `possibly_relevant`.
    """
)
async def search_knowledge_base(
    payload: KnowledgeSearchRequest,
    service: KnowledgeSearchService = Depends(get_search_service)
):
    results = await service.search(payload.query)
    return KnowledgeSearchResponse(**results.to_dict())


# Export router for inclusion in main app
knowledge_router = router
