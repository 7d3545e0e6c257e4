"""
Knowledge Domain Entities
=========================

Articles, their embedded chunks and retrieval hits.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class KnowledgeArticle:
    """A knowledge base article as authored by staff."""

    id: str
    name: str
    body: str
    category_id: Optional[str] = None
    creator_id: Optional[str] = None
    is_public: bool = True
    is_active: bool = True
    created_at: Optional[datetime] = None
    edited_at: Optional[datetime] = None


@dataclass
class ArticleChunk:
    """One embedded slice of an article body."""

    id: str
    article_id: str
    article_name: str
    position: int
    text: str
    embedding: List[float] = field(default_factory=list)
    is_public: bool = True


@dataclass
class RetrievedChunk:
    """A chunk returned by similarity search with its relevance label."""

    article_id: str
    article_name: str
    text: str
    similarity: float
    relevance: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.article_id,
            "name": self.article_name,
            "relevant_chunk": self.text,
            "similarity_score": round(self.similarity, 4),
            "relevance": self.relevance,
        }
