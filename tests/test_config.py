"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from helpdesk_agent.config import Settings


def test_defaults_match_retrieval_contract():
    s = Settings(_env_file=None)

    assert (s.chunk_size, s.chunk_overlap) == (1000, 50)
    assert s.kb_top_k == 3
    assert (s.kb_similarity_floor, s.kb_high_relevance) == (0.70, 0.85)
    assert s.agent_max_round_trips == 8


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("AGENT_MAX_ROUND_TRIPS", "3")
    monkeypatch.setenv("LLM_PROVIDER", "zai")

    s = Settings(_env_file=None)

    assert s.agent_max_round_trips == 3
    assert s.llm_provider == "zai"


@pytest.mark.parametrize("overrides", [
    {"chunk_size": 100, "chunk_overlap": 100},
    {"kb_similarity_floor": 0.9, "kb_high_relevance": 0.8},
    {"environment": "qa"},
    {"llm_provider": "groq"},
    {"vector_store_backend": "faiss"},
    {"agent_max_round_trips": 0},
])
def test_invalid_settings_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)
