"""
Dialect-aware INSERT .. ON CONFLICT DO NOTHING.

Used where two requests may race to create the same unique row (a catalog
entry, a grant, a pending verification); the loser's insert becomes a no-op
and it re-reads the winner's row instead of failing the transaction.
"""

from typing import Any, Mapping, Type

from sqlalchemy.ext.asyncio import AsyncSession


def insert_ignoring_conflicts(
    session: AsyncSession,
    model: Type[Any],
    values: Mapping[str, Any],
):
    """Build an insert for `model` that skips rows violating a unique constraint."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"Unsupported database dialect: {dialect}")
    return insert(model).values(**values).on_conflict_do_nothing()
