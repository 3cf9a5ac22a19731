"""Search orchestration.

``SearchManager`` sequences request validation, query embedding, and
catalog ranking for each search.
"""
