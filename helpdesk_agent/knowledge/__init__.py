"""
Knowledge Base Module
=====================

Bounded Context for semantic search over knowledge base articles.

Responsibilities:
- Split article bodies into fixed-size overlapping chunks
- Embed chunks and keep one article's chunks replaceable as a unit
- Rank chunks against a query and label them by relevance tier
"""
