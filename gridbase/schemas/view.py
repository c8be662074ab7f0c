# File: /gridbase/schemas/view.py | Version: 2.0 | Title: Pydantic v2 schema for Saved Views
from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import Field

from gridbase.schemas._base import BaseSchema
from gridbase.schemas.filters import FilterCondition, SortItem


class ViewConfig(BaseSchema):
    filters: List[FilterCondition] = Field(default_factory=list)
    sort: List[SortItem] = Field(default_factory=list)
    hidden_columns: List[str] = Field(default_factory=list)
    search: str = ""


class ViewCreate(BaseSchema):
    name: str = Field(min_length=1, max_length=200)


class ViewSave(BaseSchema):
    config: ViewConfig = Field(default_factory=ViewConfig)


class ViewOut(BaseSchema):
    id: str
    table_id: str
    name: str
    config: ViewConfig
    created_at: datetime
