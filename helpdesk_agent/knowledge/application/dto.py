"""
Knowledge Application DTOs
==========================

Pydantic models for the knowledge base API.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ========== Request DTOs ==========

class IngestArticleRequest(BaseModel):
    """Optional chunking overrides for one ingestion."""
    model_config = ConfigDict(populate_by_name=True)

    chunk_size: Optional[int] = Field(None, alias="chunkSize", ge=1, description="Characters per chunk")
    overlap: Optional[int] = Field(None, ge=0, description="Characters shared by consecutive chunks")

    @model_validator(mode="after")
    def validate_overlap(self) -> "IngestArticleRequest":
        if self.chunk_size is not None and self.overlap is not None and self.overlap >= self.chunk_size:
            raise ValueError("overlap must be smaller than chunkSize")
        return self


class KnowledgeSearchRequest(BaseModel):
    """Free-text knowledge base query."""
    query: str = Field(..., min_length=1, max_length=2000, description="Search text")


# ========== Response DTOs ==========

class IngestArticleResponse(BaseModel):
    """Chunk counts after re-indexing an article."""
    article_id: str
    chunks_created: int
    chunks_removed: int


class KnowledgeHit(BaseModel):
    """One retrieved chunk."""
    id: str = Field(..., description="Article id")
    name: str = Field(..., description="Article name")
    relevant_chunk: str
    similarity_score: float
    relevance: str


class KnowledgeSearchResponse(BaseModel):
    """Hits grouped by relevance tier, best first within each tier."""
    highly_relevant: List[KnowledgeHit] = Field(default_factory=list)
    possibly_relevant: List[KnowledgeHit] = Field(default_factory=list)
