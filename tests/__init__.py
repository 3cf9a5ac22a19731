"""Tests for the semantic search service.

Unit tests run against in-memory fakes for the pool and encoder (see
``tests/fakes.py``). Database-backed tests live under ``integration`` and are
skipped unless a test database is configured.
"""
