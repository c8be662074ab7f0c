# File: /gridbase/schemas/filters.py | Version: 2.0 | Title: Filter, Sort & Row Query Schemas
from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import AliasChoices, Field, field_validator, model_validator

from gridbase.core.config import settings
from gridbase.core.values import is_blank, to_number
from gridbase.schemas._base import BaseSchema

TEXT_OPS = frozenset({"equals", "contains", "not_contains", "is_empty", "is_not_empty"})
NUMBER_OPS = frozenset({">", "<", "=", "is_empty", "is_not_empty"})
VALUELESS_OPS = frozenset({"is_empty", "is_not_empty"})

OPS_BY_TYPE = {"TEXT": TEXT_OPS, "NUMBER": NUMBER_OPS}

SortDirection = Literal["asc", "desc"]


class FilterCondition(BaseSchema):
    """
    One filter row as edited in the UI. Half-edited conditions are legal
    here; `is_active` decides whether one takes part in a query.
    """

    field: str = ""
    type: str = "TEXT"
    op: str = ""
    value: Optional[Union[int, float, str]] = None

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, v):
        return str(v or "TEXT").upper()

    @field_validator("op", mode="before")
    @classmethod
    def _none_op(cls, v):
        return "" if v is None else str(v)

    @model_validator(mode="after")
    def _valueless_ops_drop_value(self) -> "FilterCondition":
        if self.op in VALUELESS_OPS:
            self.value = None
        return self

    def is_active(self, column_type: Optional[str] = None) -> bool:
        """
        True when the condition can be compiled: known column, an operator
        valid for the column's type and, unless valueless, a usable value.
        """
        ctype = (column_type or self.type).upper()
        if not self.field or self.op not in OPS_BY_TYPE.get(ctype, ()):
            return False
        if self.op in VALUELESS_OPS:
            return True
        if is_blank(self.value):
            return False
        if ctype == "NUMBER":
            return to_number(self.value) is not None
        return True


class SortItem(BaseSchema):
    column_id: str
    # The grid UI historically sent "order"
    direction: SortDirection = Field(
        default="asc", validation_alias=AliasChoices("direction", "order")
    )

    @field_validator("direction", mode="before")
    @classmethod
    def _lower_direction(cls, v):
        return "desc" if str(v or "asc").lower() == "desc" else "asc"


class QuerySpec(BaseSchema):
    search: Optional[str] = None
    filters: List[FilterCondition] = Field(default_factory=list)
    sort: List[SortItem] = Field(default_factory=list)
    cursor: Optional[int] = None
    limit: int = Field(default=settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT)

    def search_term(self) -> str:
        return (self.search or "").strip()


def active_filters(filters: List[FilterCondition]) -> List[FilterCondition]:
    return [f for f in filters if f.is_active()]


def normalize_sort(sort: List[SortItem]) -> List[SortItem]:
    """Collapse repeated columns; the last occurrence of a column wins."""
    last_index = {item.column_id: i for i, item in enumerate(sort)}
    return [item for i, item in enumerate(sort) if last_index[item.column_id] == i]


def upsert_sort(sort: List[SortItem], column_id: str, direction: str = "asc") -> List[SortItem]:
    """Set a column's direction as a client edit would, keeping one entry per column."""
    edited = list(sort) + [SortItem(column_id=column_id, direction=direction)]
    return normalize_sort(edited)
