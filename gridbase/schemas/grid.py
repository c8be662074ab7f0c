# File: /gridbase/schemas/grid.py | Version: 1.0 | Title: Table, column and row schemas
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, Field, field_validator

from gridbase.schemas._base import BaseSchema

ColumnTypeName = Literal["TEXT", "NUMBER"]
RowId = Union[int, str]
Value = Optional[Union[int, float, str]]


# ---- Columns ----


class ColumnSeed(BaseSchema):
    name: str = Field(min_length=1, max_length=255)
    type: ColumnTypeName = "TEXT"

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, v):
        return str(v).upper() if v is not None else v


class ColumnCreate(ColumnSeed):
    default_value: Value = ""


class ColumnRename(BaseSchema):
    name: str = Field(min_length=1, max_length=255)


class ColumnOut(BaseSchema):
    id: str
    table_id: str
    name: str
    type: ColumnTypeName = Field(validation_alias=AliasChoices("type", "column_type"))
    ordinal: int


# ---- Tables ----


class TableCreate(BaseSchema):
    name: str = Field(min_length=1, max_length=255)
    columns: Optional[List[ColumnSeed]] = None
    seed_rows: int = Field(default=0, ge=0, le=1000)


class TableRename(BaseSchema):
    name: str = Field(min_length=1, max_length=255)


class TableOut(BaseSchema):
    id: str
    name: str
    created_at: datetime
    columns: List[ColumnOut] = Field(default_factory=list)


# ---- Rows ----


class RowOut(BaseSchema):
    id: RowId
    values: Dict[str, Value] = Field(default_factory=dict)


class RowsPage(BaseSchema):
    rows: List[RowOut] = Field(default_factory=list)
    next_cursor: Optional[int] = None


class RowCreated(BaseSchema):
    id: int


class CellUpdate(BaseSchema):
    value: Union[int, float, str]


class Success(BaseSchema):
    success: bool = True
