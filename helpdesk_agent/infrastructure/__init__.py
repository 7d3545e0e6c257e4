"""
Infrastructure Layer
=====================

Low-level technical concerns:
- Database connection management
- LLM and embedding clients
- Vector store clients
"""
