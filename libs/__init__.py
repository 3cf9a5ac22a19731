"""Shared libraries for the semantic search service.

Subpackages:
- ``libs.common``: configuration, logging, metrics, and the error taxonomy.
- ``libs.vector_store``: connection pool lifecycle and catalog ranking
  queries on PostgreSQL/pgvector.

Notes:
- Avoid HTTP or model-specific logic here; keep modules usable from scripts.
"""
