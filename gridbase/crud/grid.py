# File: /gridbase/crud/grid.py | Version: 1.0 | Title: Tables, column catalog and row store CRUD
from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from gridbase.core.config import settings
from gridbase.crud.filtering import json_path
from gridbase.models.grid import ColumnType, GridColumn, GridRow, GridTable
from gridbase.models.view import GridView, empty_view_config

log = logging.getLogger(__name__)

DEFAULT_COLUMNS = (("Name", ColumnType.TEXT), ("Age", ColumnType.NUMBER))


# ---- Tables ----


def create_table(
    db: Session,
    *,
    name: str,
    columns: Optional[Sequence[Any]] = None,
    seed_rows: int = 0,
) -> GridTable:
    """
    Create a table with its column catalog, optional blank rows and the
    default view, in one commit.
    columns: iterable of objects with .name/.type (schemas.grid.ColumnSeed)
    """
    table = GridTable(name=name)
    db.add(table)
    db.flush()

    seeds = [(c.name, c.type) for c in columns] if columns is not None else list(DEFAULT_COLUMNS)
    created = []
    for ordinal, (col_name, col_type) in enumerate(seeds):
        col = GridColumn(table_id=table.id, name=col_name, column_type=col_type, ordinal=ordinal)
        db.add(col)
        created.append(col)
    db.flush()

    for _ in range(seed_rows):
        db.add(GridRow(table_id=table.id, document={c.id: "" for c in created}))

    db.add(GridView(table_id=table.id, name=settings.DEFAULT_VIEW_NAME, config=empty_view_config()))
    db.commit()
    db.refresh(table)
    return table


def get_table(db: Session, table_id: str) -> Optional[GridTable]:
    return db.get(GridTable, table_id)


def rename_table(db: Session, table: GridTable, name: str) -> GridTable:
    table.name = name
    db.commit()
    db.refresh(table)
    return table


def delete_table(db: Session, table: GridTable) -> bool:
    """Rows, views and the table go in one transaction; columns follow by cascade."""
    try:
        db.execute(delete(GridRow).where(GridRow.table_id == table.id))
        db.execute(delete(GridView).where(GridView.table_id == table.id))
        db.delete(table)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return True


# ---- Columns ----


def get_column(db: Session, column_id: str) -> Optional[GridColumn]:
    return db.get(GridColumn, column_id)


def list_columns(db: Session, table_id: str) -> List[GridColumn]:
    return (
        db.query(GridColumn)
        .filter(GridColumn.table_id == table_id)
        .order_by(GridColumn.ordinal.asc(), GridColumn.id.asc())
        .all()
    )


def _next_ordinal(db: Session, table_id: str) -> int:
    current = db.execute(
        select(func.max(GridColumn.ordinal)).where(GridColumn.table_id == table_id)
    ).scalar()
    return 0 if current is None else current + 1


def add_column_and_populate(
    db: Session,
    *,
    table_id: str,
    name: str,
    column_type: str,
    default_value: Any = "",
) -> GridColumn:
    """
    Create a column and write `default_value` under its id into every row
    of the table. Both happen in one transaction; on failure neither does.
    """
    try:
        col = GridColumn(
            table_id=table_id,
            name=name,
            column_type=column_type,
            ordinal=_next_ordinal(db, table_id),
        )
        db.add(col)
        db.flush()
        result = db.execute(
            update(GridRow)
            .where(GridRow.table_id == table_id)
            .values(
                document=func.json_set(
                    GridRow.document, json_path(col.id), default_value
                )
            )
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(col)
    log.info("Added column %s (%s) to table %s; populated %s rows", col.id, column_type, table_id, result.rowcount)
    return col


def rename_column(db: Session, col: GridColumn, name: str) -> GridColumn:
    col.name = name
    db.commit()
    db.refresh(col)
    return col


def delete_column(db: Session, col: GridColumn) -> bool:
    # Row documents keep the orphaned key; the catalog no longer knows it
    db.delete(col)
    db.commit()
    return True


# ---- Rows ----


def add_row(db: Session, *, table_id: str) -> GridRow:
    row = GridRow(table_id=table_id, document={})
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_cell(
    db: Session, *, table_id: str, row_id: int, column_id: str, value: Any
) -> bool:
    """
    Set one key of a row's document with a single json_set UPDATE, so
    concurrent edits to different columns of the same row cannot overwrite
    each other. Returns False when the row does not exist.
    """
    result = db.execute(
        update(GridRow)
        .where(GridRow.id == row_id, GridRow.table_id == table_id)
        .values(
            document=func.json_set(
                GridRow.document, json_path(column_id), value
            )
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount == 0:
        return False
    log.info("Updated cell table=%s row=%s column=%s", table_id, row_id, column_id)
    return True
