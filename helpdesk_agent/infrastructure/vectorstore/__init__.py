"""
Vector Store Infrastructure
============================

Vector store implementations for article chunk storage and retrieval.

- MilvusVectorStore: Zilliz Cloud (managed Milvus), COSINE metric
- InMemoryVectorStore: process-local store for development and tests

Scores returned by search() are cosine similarities (higher is closer).
"""

import asyncio
import json
import math
from typing import Any, Dict, Iterable, List, Optional
from abc import ABC, abstractmethod
from dataclasses import dataclass

from pymilvus import MilvusClient

from helpdesk_agent.config import settings
from helpdesk_agent.core import VectorStoreException
from helpdesk_agent.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Document:
    """Document for vector storage."""
    id: str
    text: str
    embedding: List[float]
    metadata: dict


@dataclass
class SearchResult:
    """Result from vector search."""
    content: str
    metadata: dict
    score: float
    id: Optional[str] = None


class IVectorStore(ABC):
    """
    Interface for vector store operations.

    Following Interface Segregation and Dependency Inversion principles.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the vector store."""

    @abstractmethod
    async def get_document_count(self) -> int:
        """Get number of documents in the collection."""

    @abstractmethod
    async def add_documents(self, documents: List[Document]) -> None:
        """Add documents to the vector store."""

    @abstractmethod
    async def search(
        self,
        query_embedding: List[float],
        top_k: int = 5,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[SearchResult]:
        """Search for similar documents, best match first."""

    @abstractmethod
    async def delete_where(self, filters: Dict[str, Any], keep_ids: Optional[Iterable[str]] = None) -> int:
        """Delete all documents whose metadata matches every filter, except ``keep_ids``."""


def cosine_similarity(a: List[float], b: List[float]) -> float:
    """Cosine similarity of two vectors; 0.0 when either is all zeros."""
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def build_filter_expression(
    filters: Optional[Dict[str, Any]],
    exclude_ids: Optional[Iterable[str]] = None
) -> str:
    """Render equality filters (and an optional id exclusion) as a Milvus boolean expression."""
    clauses = [f"{key} == {json.dumps(value)}" for key, value in (filters or {}).items()]
    excluded = sorted(set(exclude_ids or ()))
    if excluded:
        clauses.append(f"id not in {json.dumps(excluded)}")
    return " and ".join(clauses)


class MilvusVectorStore(IVectorStore):
    """
    Zilliz Cloud (Managed Milvus) implementation of vector store.

    Chunk metadata (article_id, article_name, is_public) is stored in
    dynamic fields so it can be filtered on.
    """

    _OUTPUT_FIELDS = ["text", "article_id", "article_name", "is_public"]

    def __init__(
        self,
        collection_name: Optional[str] = None,
        uri: Optional[str] = None,
        api_key: Optional[str] = None
    ):
        self._collection_name = collection_name or settings.milvus_collection_name
        self._dimension = settings.embedding_dimension
        self._uri = uri or settings.zilliz_uri
        self._api_key = api_key or settings.zilliz_api_key
        self._client: Optional[MilvusClient] = None
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize Zilliz Cloud client and collection."""
        if self._initialized:
            return

        if not self._uri:
            raise VectorStoreException("ZILLIZ_URI not configured")

        try:
            self._client = MilvusClient(uri=self._uri, token=self._api_key)

            if not self._client.has_collection(self._collection_name):
                self._client.create_collection(
                    collection_name=self._collection_name,
                    dimension=self._dimension,
                    metric_type="COSINE",
                    id_type="string",
                    max_length=64
                )
                logger.info(
                    "Created Milvus collection",
                    extra={"collection": self._collection_name, "dimension": self._dimension}
                )

            self._initialized = True

        except Exception as e:
            raise VectorStoreException(f"Failed to initialize Milvus: {str(e)}")

    async def _ensure_client(self) -> MilvusClient:
        if not self._initialized:
            await self.initialize()
        if not self._client:
            raise VectorStoreException("Vector store not initialized")
        return self._client

    async def get_document_count(self) -> int:
        """Get number of documents in the collection."""
        client = await self._ensure_client()
        try:
            res = await asyncio.to_thread(
                client.query,
                collection_name=self._collection_name,
                filter="",
                output_fields=["count(*)"]
            )
            return int(res[0]["count(*)"]) if res else 0
        except Exception as e:
            raise VectorStoreException(f"Count failed: {str(e)}")

    async def add_documents(self, documents: List[Document]) -> None:
        """
        Add documents to the vector store.

        Raises:
            VectorStoreException: If add operation fails
        """
        if not documents:
            return
        client = await self._ensure_client()

        data = [
            {
                "id": doc.id,
                "vector": doc.embedding,
                "text": doc.text,
                **{key: doc.metadata.get(key) for key in self._OUTPUT_FIELDS if key != "text"}
            }
            for doc in documents
        ]

        try:
            await asyncio.to_thread(client.upsert, collection_name=self._collection_name, data=data)
            await asyncio.to_thread(client.flush, self._collection_name)
        except Exception as e:
            raise VectorStoreException(f"Failed to add documents: {str(e)}")

    async def search(
        self,
        query_embedding: List[float],
        top_k: int = 5,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[SearchResult]:
        """
        Search for similar documents.

        Raises:
            VectorStoreException: If search fails
        """
        client = await self._ensure_client()

        try:
            results = await asyncio.to_thread(
                client.search,
                collection_name=self._collection_name,
                data=[query_embedding],
                limit=top_k,
                filter=build_filter_expression(filters),
                output_fields=self._OUTPUT_FIELDS,
                search_params={"metric_type": "COSINE"}
            )
        except Exception as e:
            raise VectorStoreException(f"Search failed: {str(e)}")

        formatted_results = []
        if results and len(results) > 0:
            for hit in results[0]:
                entity = hit["entity"]
                formatted_results.append(SearchResult(
                    content=entity.get("text", ""),
                    metadata={key: entity.get(key) for key in self._OUTPUT_FIELDS if key != "text"},
                    score=float(hit["distance"]),
                    id=hit.get("id")
                ))
        return formatted_results

    async def delete_where(self, filters: Dict[str, Any], keep_ids: Optional[Iterable[str]] = None) -> int:
        """Delete all documents matching the filters, except ``keep_ids``."""
        if not filters:
            raise VectorStoreException("Refusing to delete without filters")
        client = await self._ensure_client()

        try:
            result = await asyncio.to_thread(
                client.delete,
                collection_name=self._collection_name,
                filter=build_filter_expression(filters, keep_ids)
            )
        except Exception as e:
            raise VectorStoreException(f"Delete failed: {str(e)}")

        if isinstance(result, dict):
            return int(result.get("delete_count", 0))
        return 0


class InMemoryVectorStore(IVectorStore):
    """
    Process-local vector store.

    Brute-force cosine ranking over every stored document. Used when
    VECTOR_STORE_BACKEND=memory and in tests.
    """

    def __init__(self):
        self._documents: Dict[str, Document] = {}

    async def initialize(self) -> None:
        """Nothing to set up."""

    async def get_document_count(self) -> int:
        return len(self._documents)

    async def add_documents(self, documents: List[Document]) -> None:
        for doc in documents:
            self._documents[doc.id] = doc

    async def search(
        self,
        query_embedding: List[float],
        top_k: int = 5,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[SearchResult]:
        scored = [
            SearchResult(
                content=doc.text,
                metadata=dict(doc.metadata),
                score=cosine_similarity(query_embedding, doc.embedding),
                id=doc.id
            )
            for doc in self._documents.values()
            if self._matches(doc, filters)
        ]
        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[:top_k]

    async def delete_where(self, filters: Dict[str, Any], keep_ids: Optional[Iterable[str]] = None) -> int:
        kept = set(keep_ids or ())
        doomed = [
            doc_id for doc_id, doc in self._documents.items()
            if doc_id not in kept and self._matches(doc, filters)
        ]
        for doc_id in doomed:
            del self._documents[doc_id]
        return len(doomed)

    @staticmethod
    def _matches(doc: Document, filters: Optional[Dict[str, Any]]) -> bool:
        if not filters:
            return True
        return all(doc.metadata.get(key) == value for key, value in filters.items())


def create_vector_store() -> IVectorStore:
    """Build the configured vector store backend."""
    if settings.vector_store_backend == "memory":
        return InMemoryVectorStore()
    return MilvusVectorStore()
