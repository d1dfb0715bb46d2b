"""
Database package for Reaper.

Public API:
    - db_connection: Shared aiosqlite connection with serialised writes
    - database: Global Database instance (open, create schema, close)
"""
