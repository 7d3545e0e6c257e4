"""
Knowledge Infrastructure Models
===============================

SQLAlchemy ORM model for knowledge base articles. Chunks and their
embeddings live in the vector store, not in the relational database.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk_agent.infrastructure.database import Base


class KnowledgeArticleModel(Base):
    """
    Database model for KnowledgeArticle entity.

    Maps to the 'knowledge_base_articles' table.
    """
    __tablename__ = "knowledge_base_articles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    creator_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # Only public, active articles are searchable by the agent
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    edited_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
