"""Database Infrastructure — SQLAlchemy Base and the shared list query builder.

Invariants:
    - All sessions are async (AsyncSession)

Design Decisions:
    - asyncpg driver for PostgreSQL in production, aiosqlite in tests
"""
