"""
Knowledge Infrastructure Repositories
=====================================

SQLAlchemy implementations of the article repository.
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from helpdesk_agent.knowledge.application import IArticleRepository
from helpdesk_agent.knowledge.domain import KnowledgeArticle


class SQLAlchemyArticleRepository(IArticleRepository):
    """Read-only access to knowledge base articles."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _to_entity(model) -> KnowledgeArticle:
        return KnowledgeArticle(
            id=model.id,
            name=model.name,
            body=model.body,
            category_id=model.category_id,
            creator_id=model.creator_id,
            is_public=model.is_public,
            is_active=model.is_active,
            created_at=model.created_at,
            edited_at=model.edited_at
        )

    async def get(self, article_id: str) -> Optional[KnowledgeArticle]:
        from helpdesk_agent.knowledge.infrastructure.models import KnowledgeArticleModel

        model = await self._session.get(KnowledgeArticleModel, article_id)
        return self._to_entity(model) if model else None

    async def get_many(self, article_ids: Iterable[str]) -> Dict[str, KnowledgeArticle]:
        """Single IN query for all ids."""
        from helpdesk_agent.knowledge.infrastructure.models import KnowledgeArticleModel

        ids = list(set(article_ids))
        if not ids:
            return {}
        stmt = select(KnowledgeArticleModel).where(KnowledgeArticleModel.id.in_(ids))
        result = await self._session.execute(stmt)
        return {m.id: self._to_entity(m) for m in result.scalars().all()}

    async def list_all(self) -> List[KnowledgeArticle]:
        from helpdesk_agent.knowledge.infrastructure.models import KnowledgeArticleModel

        stmt = select(KnowledgeArticleModel).order_by(KnowledgeArticleModel.created_at)
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]


class SessionArticleRepository(IArticleRepository):
    """
    Article repository that opens a short-lived session per call.

    For long-lived services (the agent toolbox) that are not tied to one
    request session.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def get(self, article_id: str) -> Optional[KnowledgeArticle]:
        async with self._session_maker() as session:
            return await SQLAlchemyArticleRepository(session).get(article_id)

    async def get_many(self, article_ids: Iterable[str]) -> Dict[str, KnowledgeArticle]:
        async with self._session_maker() as session:
            return await SQLAlchemyArticleRepository(session).get_many(article_ids)

    async def list_all(self) -> List[KnowledgeArticle]:
        async with self._session_maker() as session:
            return await SQLAlchemyArticleRepository(session).list_all()
