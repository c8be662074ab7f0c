# File: /gridbase/routers/tables.py | Version: 1.0 | Title: Tables & Column Catalog Router
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from gridbase.crud import grid as crud_grid
from gridbase.db.session import get_db
from gridbase.schemas import grid as schema_grid

router = APIRouter(tags=["Tables"])


def _table_or_404(db: Session, table_id: str):
    table = crud_grid.get_table(db, table_id)
    if not table:
        raise HTTPException(status_code=404, detail="Table not found")
    return table


def _column_or_404(db: Session, column_id: str):
    col = crud_grid.get_column(db, column_id)
    if not col:
        raise HTTPException(status_code=404, detail="Column not found")
    return col


# ----------------------------
# Tables
# ----------------------------
@router.post("/tables", response_model=schema_grid.TableOut, summary="Create a table with its default view")
def create_table(data: schema_grid.TableCreate, db: Session = Depends(get_db)):
    return crud_grid.create_table(db, name=data.name, columns=data.columns, seed_rows=data.seed_rows)


@router.get("/tables/{table_id}", response_model=schema_grid.TableOut)
def get_table(table_id: str, db: Session = Depends(get_db)):
    return _table_or_404(db, table_id)


@router.patch("/tables/{table_id}", response_model=schema_grid.TableOut)
def rename_table(table_id: str, data: schema_grid.TableRename, db: Session = Depends(get_db)):
    table = _table_or_404(db, table_id)
    return crud_grid.rename_table(db, table, data.name.strip())


@router.delete("/tables/{table_id}", response_model=schema_grid.Success)
def delete_table(table_id: str, db: Session = Depends(get_db)):
    table = _table_or_404(db, table_id)
    crud_grid.delete_table(db, table)
    return {"success": True}


# ----------------------------
# Columns
# ----------------------------
@router.get("/tables/{table_id}/columns", response_model=List[schema_grid.ColumnOut])
def list_columns(table_id: str, db: Session = Depends(get_db)):
    _table_or_404(db, table_id)
    return crud_grid.list_columns(db, table_id)


@router.post(
    "/tables/{table_id}/columns",
    response_model=schema_grid.ColumnOut,
    summary="Add a column and backfill every row with its default value",
)
def add_column_and_populate(
    table_id: str, data: schema_grid.ColumnCreate, db: Session = Depends(get_db)
):
    _table_or_404(db, table_id)
    return crud_grid.add_column_and_populate(
        db,
        table_id=table_id,
        name=data.name.strip(),
        column_type=data.type,
        default_value=data.default_value,
    )


@router.patch("/columns/{column_id}", response_model=schema_grid.ColumnOut)
def rename_column(column_id: str, data: schema_grid.ColumnRename, db: Session = Depends(get_db)):
    col = _column_or_404(db, column_id)
    return crud_grid.rename_column(db, col, data.name.strip())


@router.delete("/columns/{column_id}", response_model=schema_grid.Success)
def delete_column(column_id: str, db: Session = Depends(get_db)):
    col = _column_or_404(db, column_id)
    crud_grid.delete_column(db, col)
    return {"success": True}
