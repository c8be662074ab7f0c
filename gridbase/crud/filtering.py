# File: /gridbase/crud/filtering.py | Version: 3.0 | Title: Row Query Engine (document filters, search, multi-key sort, keyset paging)
"""
Compiles a QuerySpec into one SELECT over `grid_row`.

Cell values live in a JSON document per row, so every predicate and sort
key reads `json_extract(document, '$."<column id>"')` and interprets it
through the column catalog's declared type:

* TEXT compares case-insensitively on the value's text (absent -> ''),
  folded by the `grid_fold` SQL function so non-ASCII letters match too.
* NUMBER goes through the `grid_number` SQL function, which yields NULL
  for blank or non-numeric values so comparisons on them are never true.

Ordering is the sort sequence left to right with the row id appended as the
final key, which keeps keyset pagination well-defined under any sort.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Float, String, and_, case, cast, false, func, not_, or_, select
from sqlalchemy.orm import Session

from gridbase.core.errors import NotFoundError
from gridbase.core.values import fold_text, to_number
from gridbase.models.grid import ColumnType, GridColumn, GridRow, GridTable
from gridbase.schemas.filters import FilterCondition, QuerySpec, SortItem
from gridbase.schemas.grid import RowOut, RowsPage

log = logging.getLogger(__name__)

SortKey = Tuple[Any, bool]  # (expression, descending)


# ----------------------
# Document value helpers
# ----------------------
def json_path(column_id: str) -> str:
    escaped = column_id.replace("\\", "\\\\").replace('"', '\\"')
    return f'$."{escaped}"'


def _raw(column_id: str):
    return func.json_extract(GridRow.document, json_path(column_id))


def _text(column_id: str):
    return func.grid_fold(func.coalesce(cast(_raw(column_id), String), ""), type_=String)


def _number(column_id: str):
    return func.grid_number(_raw(column_id), type_=Float)


def _blank(column_id: str):
    return func.trim(func.coalesce(cast(_raw(column_id), String), ""), type_=String) == ""


# ----------------------
# Catalog
# ----------------------
def load_catalog(db: Session, table_id: str) -> Dict[str, GridColumn]:
    """Columns of a table keyed by id, in ordinal order. Raises for unknown tables."""
    if db.get(GridTable, table_id) is None:
        raise NotFoundError(f"Table {table_id} not found")
    cols = (
        db.query(GridColumn)
        .filter(GridColumn.table_id == table_id)
        .order_by(GridColumn.ordinal.asc(), GridColumn.id.asc())
        .all()
    )
    return {c.id: c for c in cols}


# ----------------------
# Predicates
# ----------------------
def compile_filter(cond: FilterCondition, column: Optional[GridColumn]):
    """
    SQL predicate for one condition, or None when the condition is inert
    (unknown column, no-op operator, missing value).
    """
    if column is None or not cond.is_active(column.column_type):
        return None

    op = cond.op
    if op == "is_empty":
        return _blank(column.id)
    if op == "is_not_empty":
        return not_(_blank(column.id))

    if column.column_type == ColumnType.NUMBER:
        num = _number(column.id)
        target = to_number(cond.value)
        if op == ">":
            return num > target
        if op == "<":
            return num < target
        if op == "=":
            return num == target
        return None

    text = _text(column.id)
    term = fold_text(str(cond.value).strip())
    if op == "equals":
        return func.trim(text, type_=String) == term
    if op == "contains":
        return text.contains(term, autoescape=True)
    if op == "not_contains":
        return not_(text.contains(term, autoescape=True))
    return None


def compile_search(term: str, catalog: Dict[str, GridColumn]):
    """OR of a substring match over every catalog column."""
    needle = fold_text(term.strip())
    if not needle:
        return None
    if not catalog:
        return false()
    return or_(*[_text(col_id).contains(needle, autoescape=True) for col_id in catalog])


def compile_predicates(spec: QuerySpec, catalog: Dict[str, GridColumn]) -> List[Any]:
    exprs = []
    for cond in spec.filters:
        e = compile_filter(cond, catalog.get(cond.field))
        if e is not None:
            exprs.append(e)
        else:
            log.debug("Ignoring inert filter %s %r on %s", cond.op, cond.value, cond.field)
    search = compile_search(spec.search_term(), catalog)
    if search is not None:
        exprs.append(search)
    return exprs


# ----------------------
# Ordering
# ----------------------
def sort_keys(sort: Sequence[SortItem], catalog: Dict[str, GridColumn]) -> List[SortKey]:
    """
    Expand the sort sequence into non-null key expressions. NUMBER columns
    contribute an "is empty" flag before the value so blanks group at the
    end in ascending order.
    """
    keys: List[SortKey] = []
    for item in sort:
        column = catalog.get(item.column_id)
        if column is None:
            continue
        desc = item.direction == "desc"
        if column.column_type == ColumnType.NUMBER:
            num = _number(column.id)
            keys.append((case((num.is_(None), 1), else_=0), desc))
            keys.append((func.coalesce(num, 0.0), desc))
        else:
            keys.append((_text(column.id), desc))
    keys.append((GridRow.id, False))
    return keys


def _order_by(keys: List[SortKey]) -> List[Any]:
    return [expr.desc() if desc else expr.asc() for expr, desc in keys]


def keyset_predicate(keys: List[SortKey], values: Sequence[Any]):
    """Rows strictly after `values` under the lexicographic ordering `keys`."""
    clauses = []
    for i, (expr, desc) in enumerate(keys):
        prefix = [keys[j][0] == values[j] for j in range(i)]
        step = expr < values[i] if desc else expr > values[i]
        clauses.append(and_(*prefix, step))
    return or_(*clauses)


def _cursor_values(db: Session, table_id: str, cursor: int, keys: List[SortKey]):
    row = db.execute(
        select(*[expr for expr, _ in keys]).where(
            GridRow.id == cursor, GridRow.table_id == table_id
        )
    ).first()
    if row is None:
        raise NotFoundError(f"Cursor row {cursor} not found")
    return tuple(row)


# -----------------------------
# Query + response shaping
# -----------------------------
def build_rows_query(db: Session, table_id: str, spec: QuerySpec):
    catalog = load_catalog(db, table_id)
    keys = sort_keys(spec.sort, catalog)

    q = select(GridRow).where(GridRow.table_id == table_id)
    exprs = compile_predicates(spec, catalog)
    if exprs:
        q = q.where(and_(*exprs))
    if spec.cursor is not None:
        q = q.where(keyset_predicate(keys, _cursor_values(db, table_id, spec.cursor, keys)))
    return q.order_by(*_order_by(keys)).limit(spec.limit + 1)


def row_to_out(row: GridRow) -> RowOut:
    return RowOut(id=row.id, values=dict(row.document or {}))


def fetch_rows(db: Session, table_id: str, spec: QuerySpec) -> RowsPage:
    """One page of rows; `next_cursor` is set iff more rows follow under the same spec."""
    rows = list(db.execute(build_rows_query(db, table_id, spec)).scalars().all())
    next_cursor = None
    if len(rows) > spec.limit:
        rows.pop()
        next_cursor = rows[-1].id
    return RowsPage(rows=[row_to_out(r) for r in rows], next_cursor=next_cursor)
