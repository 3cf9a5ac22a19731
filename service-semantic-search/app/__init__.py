"""Semantic search service package.

Layout:
- ``api``: HTTP endpoint for catalog search.
- ``encoders``: query encoder loading and embedding generation.
- ``search``: per-request orchestration (validate, embed, rank).
- ``runtime``: service-local metrics helpers.
"""
