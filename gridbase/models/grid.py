# File: /gridbase/models/grid.py | Version: 1.0 | Title: Tables, column catalog and schemaless rows
from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Dict
from typing import List as TList
from uuid import uuid4

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gridbase.db.base_class import Base


def gen_uuid() -> str:
    return str(uuid4())


class ColumnType:
    TEXT = "TEXT"
    NUMBER = "NUMBER"

    ALL = (TEXT, NUMBER)


class GridTable(Base):
    __tablename__ = "grid_table"
    id: Mapped[str] = mapped_column(String, primary_key=True, default=gen_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    columns: Mapped[TList["GridColumn"]] = relationship(
        back_populates="table",
        cascade="all, delete-orphan",
        order_by="GridColumn.ordinal",
    )


class GridColumn(Base):
    __tablename__ = "grid_column"
    id: Mapped[str] = mapped_column(String, primary_key=True, default=gen_uuid)
    table_id: Mapped[str] = mapped_column(ForeignKey("grid_table.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    column_type: Mapped[str] = mapped_column(String(20), nullable=False, default=ColumnType.TEXT)
    ordinal: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    table: Mapped["GridTable"] = relationship(back_populates="columns")


class GridRow(Base):
    """
    One row. `document` maps column id -> untyped value; keys of deleted
    columns may linger and are ignored by the catalog-driven query engine.
    """

    __tablename__ = "grid_row"
    # Integer ids make ascending id order equal insertion order
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    table_id: Mapped[str] = mapped_column(ForeignKey("grid_table.id"), index=True, nullable=False)
    document: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)


Index("ix_grid_column_table_ordinal", GridColumn.table_id, GridColumn.ordinal)
