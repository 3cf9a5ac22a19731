"""API subpackage for the search service.

The router exposes the search endpoint. Transport stays thin and delegates to
``SearchManager``.
"""
