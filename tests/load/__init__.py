"""Load and performance tests.

Focus on search throughput and latency under realistic load. These tests
inform pool sizing and catch regressions in the query path.
"""
