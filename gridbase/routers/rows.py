# File: /gridbase/routers/rows.py | Version: 1.0 | Title: Rows Router (query engine, add row, cell update)
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from gridbase.core.errors import NotFoundError
from gridbase.crud import grid as crud_grid
from gridbase.crud.filtering import fetch_rows
from gridbase.db.session import get_db
from gridbase.schemas import grid as schema_grid
from gridbase.schemas.filters import QuerySpec

router = APIRouter(prefix="/tables", tags=["Rows"])


@router.post(
    "/{table_id}/rows/query",
    response_model=schema_grid.RowsPage,
    summary="One page of rows under search, filters and sort",
)
def get_rows(table_id: str, spec: QuerySpec, db: Session = Depends(get_db)):
    try:
        return fetch_rows(db, table_id, spec)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.post("/{table_id}/rows", response_model=schema_grid.RowCreated)
def add_row(table_id: str, db: Session = Depends(get_db)):
    if not crud_grid.get_table(db, table_id):
        raise HTTPException(status_code=404, detail="Table not found")
    row = crud_grid.add_row(db, table_id=table_id)
    return {"id": row.id}


@router.put(
    "/{table_id}/rows/{row_id}/cells/{column_id}",
    response_model=schema_grid.Success,
)
def update_cell(
    table_id: str,
    row_id: int,
    column_id: str,
    data: schema_grid.CellUpdate,
    db: Session = Depends(get_db),
):
    col = crud_grid.get_column(db, column_id)
    if not col or col.table_id != table_id:
        raise HTTPException(status_code=404, detail="Column not found")
    ok = crud_grid.update_cell(
        db, table_id=table_id, row_id=row_id, column_id=column_id, value=data.value
    )
    if not ok:
        raise HTTPException(status_code=404, detail="Row not found")
    return {"success": True}
