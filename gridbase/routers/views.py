# File: /gridbase/routers/views.py | Version: 2.0 | Title: Saved Views Router (list, create, save)
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from gridbase.core.errors import ConflictError
from gridbase.crud import grid as crud_grid
from gridbase.crud.view import create_view, list_views, save_view
from gridbase.db.session import get_db
from gridbase.schemas.view import ViewCreate, ViewOut, ViewSave

router = APIRouter(prefix="/tables", tags=["Views"])


def _require_table(db: Session, table_id: str) -> None:
    if not crud_grid.get_table(db, table_id):
        raise HTTPException(status_code=404, detail="Table not found")


@router.get("/{table_id}/views", response_model=List[ViewOut])
def get_views(table_id: str, db: Session = Depends(get_db)):
    _require_table(db, table_id)
    return list_views(db, table_id)


@router.post("/{table_id}/views", response_model=ViewOut, summary="Create an empty view (409 on duplicate name)")
def create_view_endpoint(table_id: str, data: ViewCreate, db: Session = Depends(get_db)):
    _require_table(db, table_id)
    try:
        return create_view(db, table_id=table_id, name=data.name.strip())
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)


@router.put("/{table_id}/views/{name}", response_model=ViewOut, summary="Create or update a view's config")
def save_view_endpoint(table_id: str, name: str, data: ViewSave, db: Session = Depends(get_db)):
    _require_table(db, table_id)
    return save_view(db, table_id=table_id, name=name.strip(), config=data.config.wire())
