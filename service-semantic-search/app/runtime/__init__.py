"""Runtime helpers for the search service."""
