"""Catalog store access on PostgreSQL with pgvector and PostGIS.

Primary components:
- ``pool``: build, validate, health-check, and close the asyncpg pool.
- ``ranking``: semantic-only and geo-filtered ranking queries.
- ``errors``: pool startup failures and query failures.

Guidance:
- Build the pool once with ``pool.initialize_pool`` and share it; create a
  ``ranking.CatalogRanker`` on top of it for request handling.
"""
