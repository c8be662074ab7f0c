# File: /gridbase/crud/view.py | Version: 2.0 | Title: CRUD helpers for Saved Views
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gridbase.core.errors import ConflictError
from gridbase.models.view import GridView, empty_view_config

log = logging.getLogger(__name__)


def list_views(db: Session, table_id: str) -> List[GridView]:
    return (
        db.query(GridView)
        .filter(GridView.table_id == table_id)
        .order_by(GridView.created_at.asc(), GridView.name.asc())
        .all()
    )


def get_view_by_name(db: Session, table_id: str, name: str) -> Optional[GridView]:
    return (
        db.query(GridView)
        .filter(GridView.table_id == table_id, GridView.name == name)
        .first()
    )


def create_view(db: Session, *, table_id: str, name: str) -> GridView:
    """New view with an empty config. Raises ConflictError if the name is taken."""
    if get_view_by_name(db, table_id, name) is not None:
        raise ConflictError(f"View '{name}' already exists")
    v = GridView(table_id=table_id, name=name, config=empty_view_config())
    db.add(v)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError(f"View '{name}' already exists") from e
    db.refresh(v)
    return v


def save_view(db: Session, *, table_id: str, name: str, config: Dict[str, Any]) -> GridView:
    """
    Create-or-update by (table_id, name). A config equal to the stored one
    is not written.
    """
    v = get_view_by_name(db, table_id, name)
    if v is None:
        v = GridView(table_id=table_id, name=name, config=config)
        db.add(v)
    elif v.config == config:
        log.debug("View %s/%s unchanged; skipping write", table_id, name)
        return v
    else:
        v.config = config
    db.commit()
    db.refresh(v)
    return v
