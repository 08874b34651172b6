# Overview: Data access gateway; the only module that talks to db.session directly.

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from ..extensions import db
"""
Gateway contract:

- Per-table select (filters / order / eager joins), insert, update-by-id,
  delete-by-id. Rows are ORM instances.
- Any SQLAlchemy failure rolls back the session and surfaces as
  DataAccessError carrying the driver message. Nothing is retried.
- commit=False defers the commit so several calls can form one unit of work;
  atomic() is the usual way to do that.
- Joined reads eager-load in the same query, so a row and its embedded
  relations come from one snapshot.
"""


class DataAccessError(Exception):
    """Raised when the backing store rejects a read or write."""

    def __init__(self, message: str, *, operation: str | None = None, table: str | None = None):
        super().__init__(message)
        self.operation = operation
        self.table = table


def _table(model) -> str:
    return getattr(model, "__tablename__", model.__name__)


def _fail(exc: SQLAlchemyError, operation: str, model) -> DataAccessError:
    db.session.rollback()
    message = str(getattr(exc, "orig", None) or exc)
    return DataAccessError(message, operation=operation, table=_table(model))


def _finish(commit: bool) -> None:
    if commit:
        db.session.commit()
    else:
        db.session.flush()


def select(
    model,
    *,
    filters: dict[str, Any] | None = None,
    where: Iterable = (),
    order_by: str | Iterable[str] | None = None,
    descending: bool = False,
    joins: Iterable[str] = (),
    limit: int | None = None,
) -> list:
    """
    Read rows from one table.

    filters: equality filters by column name.
    where: extra SQLAlchemy criteria (e.g. Model.quantity <= Model.critical_quantity).
    order_by: column name(s); descending applies to all of them.
    joins: relationship names to embed in the result.
    """
    try:
        query = db.session.query(model)
        if filters:
            query = query.filter_by(**filters)
        for criterion in where:
            query = query.filter(criterion)
        for rel in joins:
            query = query.options(selectinload(getattr(model, rel)))
        if order_by is not None:
            names = [order_by] if isinstance(order_by, str) else list(order_by)
            for name in names:
                col = getattr(model, name)
                query = query.order_by(col.desc() if descending else col.asc())
        query = query.order_by(model.id.desc() if descending else model.id.asc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()
    except SQLAlchemyError as exc:
        raise _fail(exc, "select", model) from exc


def get_by_id(model, row_id: int, *, joins: Iterable[str] = ()):
    rows = select(model, filters={"id": row_id}, joins=joins, limit=1)
    return rows[0] if rows else None


def first(model, **filters):
    rows = select(model, filters=filters, limit=1)
    return rows[0] if rows else None


def insert(model, values: dict, *, commit: bool = True):
    try:
        row = model(**values)
        db.session.add(row)
        _finish(commit)
        return row
    except SQLAlchemyError as exc:
        raise _fail(exc, "insert", model) from exc


def insert_many(model, rows: Iterable[dict], *, commit: bool = True) -> list:
    try:
        created = [model(**values) for values in rows]
        db.session.add_all(created)
        _finish(commit)
        return created
    except SQLAlchemyError as exc:
        raise _fail(exc, "insert", model) from exc


def update_by_id(model, row_id: int, values: dict, *, commit: bool = True):
    """Update columns on one row. Returns the row, or None if it does not exist."""
    try:
        row = db.session.get(model, row_id)
        if row is None:
            return None
        for key, value in values.items():
            setattr(row, key, value)
        _finish(commit)
        return row
    except SQLAlchemyError as exc:
        raise _fail(exc, "update", model) from exc


def adjust_by_id(
    model,
    row_id: int,
    column: str,
    delta: int,
    *,
    minimum: int | None = None,
    commit: bool = True,
) -> bool:
    """
    Atomically add delta to a numeric column in a single UPDATE statement.

    With minimum set, the row is only touched when column + delta >= minimum
    (compare-and-swap). Returns False when no row matched: either the row is
    gone or the guard rejected the change.
    """
    try:
        col = getattr(model, column)
        query = db.session.query(model).filter(model.id == row_id)
        if minimum is not None:
            query = query.filter(col + delta >= minimum)
        matched = query.update({col: col + delta}, synchronize_session=False)
        _finish(commit)
        if matched:
            row = db.session.get(model, row_id)
            if row is not None:
                db.session.refresh(row)
        return bool(matched)
    except SQLAlchemyError as exc:
        raise _fail(exc, "update", model) from exc


def update_where(model, values: dict, *, commit: bool = True, **filters) -> int:
    try:
        count = db.session.query(model).filter_by(**filters).update(values, synchronize_session=False)
        _finish(commit)
        return count
    except SQLAlchemyError as exc:
        raise _fail(exc, "update", model) from exc


def delete_by_id(model, row_id: int, *, commit: bool = True) -> bool:
    try:
        row = db.session.get(model, row_id)
        if row is None:
            return False
        db.session.delete(row)
        _finish(commit)
        return True
    except SQLAlchemyError as exc:
        raise _fail(exc, "delete", model) from exc


def delete_where(model, *, commit: bool = True, **filters) -> int:
    try:
        rows = db.session.query(model).filter_by(**filters).all()
        for row in rows:
            db.session.delete(row)
        _finish(commit)
        return len(rows)
    except SQLAlchemyError as exc:
        raise _fail(exc, "delete", model) from exc


@contextmanager
def atomic() -> Iterator[None]:
    """
    One unit of work: commit when the block exits cleanly, roll back on any
    exception (including domain errors raised inside the block).
    """
    try:
        yield
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise DataAccessError(str(getattr(exc, "orig", None) or exc), operation="commit") from exc
    except BaseException:
        db.session.rollback()
        raise
