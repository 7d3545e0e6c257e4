"""
Shared Infrastructure
=====================

Structured logging and request tracing helpers.
"""
