"""
Repository helpers shared by the services.

Wraps the storage patterns every service relies on: fetch-or-404, the
optimistic conditional update and the constraint-backed insert that
ignores duplicates.
"""

import logging
from typing import Any, Iterable, Mapping, Type, TypeVar

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


async def get_or_404(
    session: AsyncSession, model: Type[ModelT], entity_id: int, entity: str | None = None
) -> ModelT:
    """
    Load a row by primary key.

    Args:
        session: Database session
        model: Mapped class
        entity_id: Primary key value
        entity: Name used in the error message (default: class name)

    Returns:
        The loaded instance

    Raises:
        NotFoundError: If no row has that id
    """
    instance = await session.get(model, entity_id)
    if instance is None:
        raise NotFoundError(entity or model.__name__, entity_id)
    return instance


async def guarded_update(
    session: AsyncSession,
    instance: Any,
    guard_column: str,
    expected: Any,
    values: Mapping[str, Any],
    entity: str | None = None,
) -> Any:
    """
    Apply ``values`` only if ``guard_column`` still holds ``expected``.

    Issues ``UPDATE ... WHERE id = :id AND <guard> = :expected`` and bumps
    ``version`` in the same statement. When no row matches, the row is
    re-read to tell a vanished entity (NotFoundError) from a stale
    expectation (ConflictError). The instance is refreshed afterwards so
    callers see the persisted values.

    Args:
        session: Database session
        instance: Loaded ORM instance with ``id`` and ``version`` columns
        guard_column: Column whose current value must equal ``expected``
        expected: Expected current value (None matches SQL NULL)
        values: Column values to write
        entity: Name used in error messages

    Returns:
        The refreshed instance
    """
    model = type(instance)
    name = entity or model.__name__
    column = getattr(model, guard_column)
    condition = column.is_(None) if expected is None else column == expected

    stmt = (
        update(model)
        .where(model.id == instance.id, condition)
        .values(**values, version=model.version + 1)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)

    if result.rowcount == 0:
        current = await session.scalar(
            select(column).where(model.id == instance.id)
        )
        exists = await session.scalar(select(model.id).where(model.id == instance.id))
        if exists is None:
            raise NotFoundError(name, instance.id)
        logger.warning(
            "Stale %s update refused: id=%s %s expected=%s actual=%s",
            name, instance.id, guard_column, expected, current,
        )
        raise ConflictError(
            f"{name} {instance.id} {guard_column} is {_display(current)}, "
            f"expected {_display(expected)}",
            {"expected": _display(expected), "actual": _display(current)},
        )

    await session.refresh(instance)
    return instance


def _display(value: Any) -> Any:
    return getattr(value, "value", value)


async def insert_ignore_conflicts(
    session: AsyncSession,
    model: Type[Any],
    rows: Iterable[Mapping[str, Any]],
    conflict_columns: list[str],
) -> None:
    """
    Insert rows, silently skipping ones that violate a unique constraint.

    Uses the dialect's ``INSERT ... ON CONFLICT DO NOTHING`` so concurrent
    callers racing on the same key cannot produce duplicates.

    Args:
        session: Database session
        model: Mapped class
        rows: Column mappings to insert
        conflict_columns: Columns of the unique constraint
    """
    rows = list(rows)
    if not rows:
        return

    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"ON CONFLICT inserts unsupported on {dialect}")

    stmt = insert(model).values(rows).on_conflict_do_nothing(
        index_elements=conflict_columns
    )
    await session.execute(stmt)
