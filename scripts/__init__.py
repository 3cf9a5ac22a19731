"""Utility scripts for operating the search service.

Scripts include:
- ``init_catalog_schema.py``: create extensions, catalog tables, and indexes.
- ``download_model.py``: fetch the query encoder artifacts.
"""
