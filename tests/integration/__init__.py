"""Integration tests against a real PostgreSQL instance.

Exercise the ranking SQL with pgvector and PostGIS using a throwaway schema.
"""
