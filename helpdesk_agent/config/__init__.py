"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="helpdesk-agent", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== LLM Providers ==========
    llm_provider: str = Field(
        default="openai",
        description="Chat/embedding provider: openai or zai"
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    zai_api_key: Optional[str] = Field(default=None, description="Z.AI API key")
    mock_llm: bool = Field(
        default=False,
        description="Use mock LLM responses for testing (no API calls)"
    )
    llm_model: str = Field(default="gpt-4o-mini", description="Chat model used by the agent")
    embedding_model: str = Field(
        default="text-embedding-ada-002",
        description="Embedding model for article chunks and queries"
    )
    embedding_dimension: int = Field(
        default=1536,
        description="Embedding vector dimension",
        ge=8
    )
    llm_temperature: float = Field(
        default=0.6,
        description="Default temperature for LLM",
        ge=0.0,
        le=2.0
    )
    llm_max_tokens: int = Field(
        default=1000,
        description="Default max tokens for LLM generation",
        ge=1,
        le=8000
    )

    # ========== Vector Store ==========
    vector_store_backend: str = Field(
        default="milvus",
        description="Chunk storage backend: milvus or memory"
    )
    zilliz_uri: str = Field(default="", description="Zilliz Cloud cluster URI")
    zilliz_api_key: str = Field(default="", description="Zilliz Cloud API key")
    milvus_collection_name: str = Field(
        default="article_chunks",
        description="Milvus collection holding article chunks"
    )

    # ========== Knowledge Base ==========
    chunk_size: int = Field(default=1000, description="Characters per article chunk", ge=1)
    chunk_overlap: int = Field(default=50, description="Characters shared by consecutive chunks", ge=0)
    kb_top_k: int = Field(default=3, description="Chunks returned per search", ge=1, le=20)
    kb_similarity_floor: float = Field(
        default=0.70,
        description="Minimum similarity for a chunk to be returned",
        ge=0.0,
        le=1.0
    )
    kb_high_relevance: float = Field(
        default=0.85,
        description="Similarity at which a chunk is labeled highly relevant",
        ge=0.0,
        le=1.0
    )

    # ========== Agent ==========
    agent_name: str = Field(default="MadAI", description="Name the agent introduces itself with")
    agent_max_round_trips: int = Field(
        default=8,
        description="Maximum deliberate/act cycles before the fallback reply",
        ge=1
    )
    agent_fallback_reply: str = Field(
        default=(
            "Thanks for reaching out! We're still looking into your request and a member "
            "of our support team will follow up with you shortly."
        ),
        description="Customer reply used when the agent loop is exhausted"
    )
    agent_error_reply: str = Field(
        default=(
            "Sorry, something went wrong while handling your request. "
            "Please try again in a moment."
        ),
        description="Customer reply used when a request fails"
    )
    agent_record_replies: bool = Field(
        default=True,
        description="Store completed agent replies as ticket conversation messages"
    )
    agent_idempotency_cache_size: int = Field(
        default=256,
        description="Completed request ids remembered for replay",
        ge=1
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "test", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        allowed = {"openai", "zai"}
        if v not in allowed:
            raise ValueError(f"llm_provider must be one of {allowed}")
        return v

    @field_validator("vector_store_backend")
    @classmethod
    def validate_vector_store_backend(cls, v: str) -> str:
        allowed = {"milvus", "memory"}
        if v not in allowed:
            raise ValueError(f"vector_store_backend must be one of {allowed}")
        return v

    @model_validator(mode="after")
    def validate_knowledge_settings(self) -> "Settings":
        """Chunks must advance and tiers must be ordered."""
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        if self.kb_high_relevance < self.kb_similarity_floor:
            raise ValueError("kb_high_relevance must not be below kb_similarity_floor")
        return self


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class AssignmentType(str):
    """Ticket assignment kinds."""
    INDIVIDUAL = "individual"
    TEAM = "team"


class HistoryAction(str):
    """Action tags written to ticket history."""
    UPDATE = "update"


class ActivityType(str):
    """Origins of items in a ticket timeline."""
    HISTORY = "history"
    COMMENT = "comment"
    CONVERSATION = "conversation"


class RelevanceTier(str):
    """Knowledge base retrieval confidence bands."""
    HIGHLY_RELEVANT = "highly_relevant"
    POSSIBLY_RELEVANT = "possibly_relevant"


class ResolutionStatus(str):
    """Terminal states of a resolution request."""
    COMPLETED = "completed"
    EXHAUSTED = "exhausted"


AI_ACTOR_NAME = "AI Agent"
UNKNOWN_ACTOR_NAME = "Unknown User"

VALID_ASSIGNMENT_TYPES = [AssignmentType.INDIVIDUAL, AssignmentType.TEAM]
VALID_ACTIVITY_TYPES = [ActivityType.HISTORY, ActivityType.COMMENT, ActivityType.CONVERSATION]
VALID_RELEVANCE_TIERS = [RelevanceTier.HIGHLY_RELEVANT, RelevanceTier.POSSIBLY_RELEVANT]
