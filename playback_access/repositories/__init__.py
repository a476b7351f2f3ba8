"""
Repository package for data access layers.

`videos` exposes the read-only lookup of ready videos by token id, with a
PostgreSQL implementation and an in-memory one for tests and local runs.
"""
