"""
Knowledge External Service Adapters
===================================

Adapters for external services (LLM embeddings, vector store) used by
the knowledge module.

Implements the interfaces defined in the application layer using the
shared infrastructure clients.
"""

from typing import Iterable, List, Optional

from helpdesk_agent.infrastructure.llm import ILLMClient
from helpdesk_agent.infrastructure.vectorstore import Document, IVectorStore
from helpdesk_agent.knowledge.application import IChunkStore, IEmbeddingProvider
from helpdesk_agent.knowledge.domain import ArticleChunk, RetrievedChunk


class LLMEmbeddingProvider(IEmbeddingProvider):
    """
    Adapter that wraps the infrastructure LLM client.

    Implements IEmbeddingProvider with the configured embedding model.
    """

    def __init__(self, llm_client: ILLMClient):
        self._client = llm_client

    async def embed(self, text: str) -> List[float]:
        result = await self._client.generate_embedding(text)
        return result.embedding


class VectorChunkStore(IChunkStore):
    """
    Adapter that wraps the infrastructure vector store.

    Chunk metadata (article_id, article_name, is_public) is stored next
    to the vector so searches can filter on visibility and deletes can
    target a single article.
    """

    def __init__(self, vector_store: IVectorStore):
        self._store = vector_store

    async def add_chunks(self, chunks: List[ArticleChunk]) -> None:
        await self._store.add_documents([
            Document(
                id=chunk.id,
                text=chunk.text,
                embedding=chunk.embedding,
                metadata={
                    "article_id": chunk.article_id,
                    "article_name": chunk.article_name,
                    "is_public": chunk.is_public,
                }
            )
            for chunk in chunks
        ])

    async def delete_article(self, article_id: str, keep_ids: Optional[Iterable[str]] = None) -> int:
        return await self._store.delete_where({"article_id": article_id}, keep_ids=keep_ids)

    async def search(
        self,
        embedding: List[float],
        top_k: int,
        public_only: bool = True
    ) -> List[RetrievedChunk]:
        filters = {"is_public": True} if public_only else None
        results = await self._store.search(embedding, top_k=top_k, filters=filters)
        return [
            RetrievedChunk(
                article_id=r.metadata.get("article_id", ""),
                article_name=r.metadata.get("article_name", ""),
                text=r.content,
                similarity=r.score
            )
            for r in results
        ]
