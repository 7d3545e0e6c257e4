"""
Knowledge Value Objects
=======================

Stateless text chunking and relevance banding.
"""

from dataclasses import dataclass, field
from typing import List

from helpdesk_agent.config import RelevanceTier
from helpdesk_agent.knowledge.domain.entities import RetrievedChunk


def chunk_text(text: str, chunk_size: int, overlap: int) -> List[str]:
    """
    Split ``text`` into slices of ``chunk_size`` characters.

    Each slice starts ``chunk_size - overlap`` characters after the previous
    one, so consecutive slices share exactly ``overlap`` characters. Slicing
    stops at the first slice that reaches the end of the text; only that
    last slice may be shorter than ``chunk_size``.

    Raises:
        ValueError: If chunk_size <= 0 or overlap is outside [0, chunk_size)
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError(f"overlap must be in [0, {chunk_size}), got {overlap}")

    chunks: List[str] = []
    start = 0
    while start < len(text):
        end = start + chunk_size
        chunks.append(text[start:end])
        if end >= len(text):
            break
        start = end - overlap
    return chunks


def relevance_tier(similarity: float, high_threshold: float) -> str:
    """Band a similarity score that already passed the relevance floor."""
    if similarity >= high_threshold:
        return RelevanceTier.HIGHLY_RELEVANT
    return RelevanceTier.POSSIBLY_RELEVANT


@dataclass
class TieredResults:
    """Retrieval hits grouped by tier, each group in descending similarity."""

    highly_relevant: List[RetrievedChunk] = field(default_factory=list)
    possibly_relevant: List[RetrievedChunk] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.highly_relevant and not self.possibly_relevant

    @property
    def ranked(self) -> List[RetrievedChunk]:
        """All hits, best first."""
        return sorted(
            self.highly_relevant + self.possibly_relevant,
            key=lambda hit: hit.similarity,
            reverse=True
        )

    def to_dict(self) -> dict:
        return {
            RelevanceTier.HIGHLY_RELEVANT: [hit.to_dict() for hit in self.highly_relevant],
            RelevanceTier.POSSIBLY_RELEVANT: [hit.to_dict() for hit in self.possibly_relevant],
        }
