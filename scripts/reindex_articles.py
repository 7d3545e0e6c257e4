#!/usr/bin/env python3
"""
Reindex Knowledge Articles
==========================

Re-chunks and re-embeds every active knowledge base article and removes
the chunks of inactive ones from the vector store.

Usage:
    python scripts/reindex_articles.py
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from helpdesk_agent.config import settings  # noqa: E402
from helpdesk_agent.infrastructure.database import (  # noqa: E402
    close_database,
    get_session_context,
    init_database,
)
from helpdesk_agent.infrastructure.llm import create_llm_client  # noqa: E402
from helpdesk_agent.infrastructure.vectorstore import create_vector_store  # noqa: E402
from helpdesk_agent.knowledge.application import ArticleIngestionService  # noqa: E402
from helpdesk_agent.knowledge.infrastructure import (  # noqa: E402
    LLMEmbeddingProvider,
    SQLAlchemyArticleRepository,
    VectorChunkStore,
)
from helpdesk_agent.shared.infrastructure.logging import get_logger, setup_logging  # noqa: E402

logger = get_logger("reindex_articles")


async def main() -> None:
    setup_logging(settings.log_level, settings.environment)
    init_database()

    vector_store = create_vector_store()
    await vector_store.initialize()
    llm_client = create_llm_client()

    try:
        async with get_session_context() as session:
            service = ArticleIngestionService(
                SQLAlchemyArticleRepository(session),
                LLMEmbeddingProvider(llm_client),
                VectorChunkStore(vector_store)
            )
            results = await service.reindex_all()
    finally:
        await close_database()

    logger.info(
        "Reindex finished",
        extra={
            "articles": len(results),
            "chunks_created": sum(r.chunks_created for r in results),
            "chunks_removed": sum(r.chunks_removed for r in results)
        }
    )
    print(f"Reindexed {len(results)} articles")


if __name__ == "__main__":
    asyncio.run(main())
