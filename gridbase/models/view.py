# File: /gridbase/models/view.py | Version: 1.2 | Title: SQLAlchemy model for Saved Views
from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from gridbase.db.base_class import Base
from gridbase.models.grid import gen_uuid


def empty_view_config() -> Dict[str, Any]:
    return {"filters": [], "sort": [], "hiddenColumns": [], "search": ""}


class GridView(Base):
    __tablename__ = "grid_view"
    __table_args__ = (UniqueConstraint("table_id", "name", name="uq_view_table_name"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=gen_uuid)
    table_id: Mapped[str] = mapped_column(ForeignKey("grid_table.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # {filters, sort, hiddenColumns, search}; replaced in place, never versioned
    config: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=empty_view_config)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
