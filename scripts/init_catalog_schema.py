#!/usr/bin/env python3
"""Initialize the catalog schema with a configurable vector dimension.

Creates the pgvector and PostGIS extensions, the ``organization``,
``service``, ``location`` and ``service_at_location`` tables read by the
search service, and the vector/geography indexes the ranking queries use.
Safe to re-run.
"""

import argparse
import asyncio
from typing import List, Optional

import asyncpg
import structlog

from libs.common.config import BaseConfig
from libs.common.logging import configure_logging

logger = structlog.get_logger("scripts.init_catalog_schema")


def schema_statements(vector_dimension: int) -> List[str]:
    """DDL for the catalog, in execution order."""
    return [
        "CREATE EXTENSION IF NOT EXISTS vector;",
        "CREATE EXTENSION IF NOT EXISTS postgis;",
        """
        CREATE TABLE IF NOT EXISTS organization (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        );
        """,
        f"""
        CREATE TABLE IF NOT EXISTS service (
            id TEXT PRIMARY KEY,
            organization_id TEXT REFERENCES organization(id),
            name TEXT NOT NULL,
            description TEXT,
            short_description TEXT,
            status TEXT NOT NULL DEFAULT 'active',
            embedding vector({vector_dimension}),
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        );
        """,
        """
        CREATE TABLE IF NOT EXISTS location (
            id TEXT PRIMARY KEY,
            name TEXT,
            geom geography(Point, 4326)
        );
        """,
        """
        CREATE TABLE IF NOT EXISTS service_at_location (
            id TEXT PRIMARY KEY,
            service_id TEXT NOT NULL REFERENCES service(id) ON DELETE CASCADE,
            location_id TEXT NOT NULL REFERENCES location(id) ON DELETE CASCADE,
            UNIQUE (service_id, location_id)
        );
        """,
        "CREATE INDEX IF NOT EXISTS idx_service_organization ON service(organization_id);",
        "CREATE INDEX IF NOT EXISTS idx_service_embedding ON service USING hnsw (embedding vector_cosine_ops);",
        "CREATE INDEX IF NOT EXISTS idx_location_geom ON location USING gist (geom);",
        "CREATE INDEX IF NOT EXISTS idx_service_at_location_location ON service_at_location(location_id);",
    ]


async def init_catalog_schema(vector_dimension: Optional[int] = None) -> None:
    """Create extensions, tables, and indexes."""
    config = BaseConfig()
    vector_dimension = vector_dimension or config.vector_dimension
    if not vector_dimension:
        raise SystemExit("A vector dimension is required (VECTOR_DIMENSION or --dimension)")

    settings = config.database_settings()
    logger.info("Initializing catalog schema", vector_dimension=vector_dimension, **settings.describe())

    conn = await asyncpg.connect(
        host=settings.host,
        port=settings.port,
        database=settings.database,
        user=settings.user,
        password=settings.password or None,
        timeout=settings.connect_timeout,
    )

    try:
        async with conn.transaction():
            for statement in schema_statements(vector_dimension):
                await conn.execute(statement)
        logger.info("Catalog schema initialized", vector_dimension=vector_dimension)
    finally:
        await conn.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Initialize the catalog schema")
    parser.add_argument("--dimension", type=int, default=None, help="Embedding dimension (default: VECTOR_DIMENSION)")
    args = parser.parse_args()

    config = BaseConfig()
    configure_logging("init-catalog-schema", config.log_level, "console")
    asyncio.run(init_catalog_schema(args.dimension))


if __name__ == "__main__":
    main()
