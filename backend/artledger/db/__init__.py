"""Database Infrastructure — SQLAlchemy Base and session factory helpers.

Invariants:
    - All sessions are async (AsyncSession)

Design Decisions:
    - asyncpg driver for PostgreSQL in production, aiosqlite in tests
"""
