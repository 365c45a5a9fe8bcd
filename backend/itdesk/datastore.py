"""Generic structured-query adapter over a SQLAlchemy session.

Services talk to persistence only through ``Datastore``: tables are addressed
by their external names (``stock_items``, ``custom_users`` ...) and rows travel
as plain dicts keyed by column name.

Filters:
    {'status': 'pending'}                  equality
    {'date': ('gte', since)}               comparison; ops: eq neq gt gte lt lte in ilike
Ordering:
    ['-date', 'name']                      '-' prefix means descending

Calls made outside ``transaction()`` commit on their own; inside it they are
flushed and committed (or rolled back) together when the block exits.
"""
from __future__ import annotations
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select, insert, update, delete, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from itdesk.errors import DatastoreError, IntegrityViolation
from itdesk.models.users import Base
import itdesk.models.issues  # noqa: F401
import itdesk.models.stock  # noqa: F401
import itdesk.models.purchase_request  # noqa: F401

log = logging.getLogger(__name__)

Row = Dict[str, Any]

_OPS = {
    'eq': lambda col, v: col == v,
    'neq': lambda col, v: col != v,
    'gt': lambda col, v: col > v,
    'gte': lambda col, v: col >= v,
    'lt': lambda col, v: col < v,
    'lte': lambda col, v: col <= v,
    'in': lambda col, v: col.in_(list(v)),
    'ilike': lambda col, v: col.ilike(v),
}


class Datastore:
    def __init__(self, session):
        self.session = session
        self._depth = 0

    # ---- helpers ---------------------------------------------------------
    def _table(self, name: str):
        table = Base.metadata.tables.get(name)
        if table is None:
            raise DatastoreError(f'unknown table {name}')
        return table

    def _column(self, table, name: str):
        if name not in table.c:
            raise DatastoreError(f'unknown column {table.name}.{name}')
        return table.c[name]

    def _where(self, table, filters: Optional[Dict[str, Any]]):
        clauses = []
        for name, value in (filters or {}).items():
            col = self._column(table, name)
            if isinstance(value, tuple) and len(value) == 2 and value[0] in _OPS:
                op, operand = value
                clauses.append(_OPS[op](col, operand))
            elif value is None:
                clauses.append(col.is_(None))
            else:
                clauses.append(col == value)
        return and_(*clauses) if clauses else None

    def _order(self, table, ordering: Optional[Iterable[str]]):
        clauses = []
        for token in ordering or ():
            desc = token.startswith('-')
            col = self._column(table, token[1:] if desc else token)
            clauses.append(col.desc() if desc else col.asc())
        return clauses

    def _finish(self):
        if self._depth == 0:
            self.session.commit()
        else:
            self.session.flush()

    def _fail(self, exc: SQLAlchemyError, what: str):
        if self._depth == 0:
            self.session.rollback()
        log.error('datastore %s failed: %s', what, exc)
        if isinstance(exc, IntegrityError):
            return IntegrityViolation(f'{what}: constraint violated')
        return DatastoreError(f'{what} failed')

    # ---- capabilities ----------------------------------------------------
    @contextmanager
    def transaction(self):
        self._depth += 1
        try:
            yield self
        except SQLAlchemyError as exc:
            self._depth -= 1
            if self._depth == 0:
                self.session.rollback()
            raise self._fail(exc, 'transaction') from exc
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self.session.rollback()
            raise
        else:
            self._depth -= 1
            if self._depth == 0:
                try:
                    self.session.commit()
                except SQLAlchemyError as exc:
                    self.session.rollback()
                    raise self._fail(exc, 'commit') from exc

    def select(self, table: str, columns: Optional[Sequence[str]] = None, filters: Optional[Dict[str, Any]] = None,
               ordering: Optional[Iterable[str]] = None, limit: Optional[int] = None) -> List[Row]:
        t = self._table(table)
        cols = [self._column(t, c) for c in columns] if columns else list(t.c)
        stmt = select(*cols)
        where = self._where(t, filters)
        if where is not None:
            stmt = stmt.where(where)
        order = self._order(t, ordering)
        if order:
            stmt = stmt.order_by(*order)
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            return [dict(r) for r in self.session.execute(stmt).mappings().all()]
        except SQLAlchemyError as exc:
            raise self._fail(exc, f'select {table}') from exc

    def select_one(self, table: str, filters: Dict[str, Any]) -> Optional[Row]:
        rows = self.select(table, filters=filters, limit=1)
        return rows[0] if rows else None

    def insert(self, table: str, row: Row) -> Row:
        t = self._table(table)
        values = dict(row)
        for name in values:
            self._column(t, name)
        pk_names = [c.name for c in t.primary_key.columns]
        if pk_names == ['id'] and not values.get('id'):
            values['id'] = str(uuid.uuid4())
        try:
            self.session.execute(insert(t).values(**values))
            self._finish()
        except SQLAlchemyError as exc:
            raise self._fail(exc, f'insert {table}') from exc
        return self.select_one(table, {k: values[k] for k in pk_names})

    def update(self, table: str, patch: Row, filters: Dict[str, Any]) -> List[Row]:
        t = self._table(table)
        for name in patch:
            self._column(t, name)
        where = self._where(t, filters)
        pk_names = [c.name for c in t.primary_key.columns]
        try:
            stmt = select(*[t.c[n] for n in pk_names])
            if where is not None:
                stmt = stmt.where(where)
            keys = [dict(r) for r in self.session.execute(stmt).mappings().all()]
            if not keys:
                return []
            stmt = update(t).values(**patch)
            if where is not None:
                stmt = stmt.where(where)
            result = self.session.execute(stmt)
            self._finish()
        except SQLAlchemyError as exc:
            raise self._fail(exc, f'update {table}') from exc
        if result.rowcount == 0:
            return []
        out = []
        for key in keys:
            found = self.select_one(table, key)
            if found is not None:
                out.append(found)
        return out

    def update_one(self, table: str, patch: Row, filters: Dict[str, Any]) -> Optional[Row]:
        rows = self.update(table, patch, filters)
        return rows[0] if rows else None

    def delete(self, table: str, filters: Dict[str, Any]) -> int:
        t = self._table(table)
        where = self._where(t, filters)
        if where is None:
            raise DatastoreError(f'refusing unfiltered delete on {table}')
        try:
            result = self.session.execute(delete(t).where(where))
            self._finish()
        except SQLAlchemyError as exc:
            raise self._fail(exc, f'delete {table}') from exc
        return result.rowcount or 0

    def call_procedure(self, name: str, args: Optional[Dict[str, Any]] = None) -> List[Row]:
        from itdesk.procedures import PROCEDURES
        proc = PROCEDURES.get(name)
        if proc is None:
            raise DatastoreError(f'unknown procedure {name}')
        try:
            return proc(self, **(args or {}))
        except SQLAlchemyError as exc:
            raise self._fail(exc, f'procedure {name}') from exc


__all__ = ['Datastore', 'Row']
