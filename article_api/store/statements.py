"""Dialect-aware statement builders shared by the store modules."""
from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def insert_ignoring_conflicts(db: AsyncSession, table: Table):
    """
    Return ``INSERT ... ON CONFLICT DO NOTHING`` for *table*.

    The affected row count of the executed statement tells whether the row
    was actually inserted (1) or already present (0), without raising an
    ``IntegrityError`` that would poison the surrounding transaction.
    PostgreSQL in production, SQLite in the test suite.
    """
    dialect = postgresql if db.get_bind().dialect.name == "postgresql" else sqlite
    return dialect.insert(table).on_conflict_do_nothing()
