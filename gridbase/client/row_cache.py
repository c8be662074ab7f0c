# File: /gridbase/client/row_cache.py | Version: 1.0 | Title: Client row cache (paged window + optimistic overlay)
"""
Index-addressable rows for a virtualized grid, built from successive
query pages, with optimistic state layered on top.

Rendered order is always server rows in fetch order followed by
optimistic rows in insertion order. A cell renders the first of:

    local edit  >  placeholder ('')  >  server document value

Server-derived structures are never patched in place; a refetch replaces
them wholesale, and the overlay is cleared only once a page fetched
after the edit's confirmation has arrived.
"""
from __future__ import annotations

import asyncio
from collections import deque
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence, Set, Tuple, Union
from uuid import uuid4

from gridbase.core.config import settings
from gridbase.core.errors import GridError
from gridbase.core.values import coerce_for_type, to_text
from gridbase.schemas.filters import FilterCondition, QuerySpec, SortItem, active_filters
from gridbase.schemas.grid import ColumnOut, RowsPage
from gridbase.schemas.view import ViewConfig

logger = logging.getLogger(__name__)

OPTIMISTIC_PREFIX = "__optimistic__"
ERROR_HISTORY = 50

RowId = Union[int, str]
CellKey = Tuple[RowId, str]


def is_optimistic_id(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(OPTIMISTIC_PREFIX)


@dataclass
class CachedRow:
    id: RowId
    values: Dict[str, Any] = field(default_factory=dict)
    is_optimistic: bool = False


@dataclass
class CachedColumn:
    id: str
    name: str
    type: str
    ordinal: int = 0
    is_optimistic: bool = False

    @classmethod
    def from_out(cls, col: ColumnOut) -> "CachedColumn":
        return cls(id=col.id, name=col.name, type=col.type, ordinal=col.ordinal)


@dataclass
class LocalEdit:
    value: Any
    seq: int
    # fetch counter at the moment the server confirmed this edit
    confirmed_at: Optional[int] = None


@dataclass(frozen=True)
class QueryState:
    search: str = ""
    filters: Tuple[FilterCondition, ...] = ()
    sort: Tuple[SortItem, ...] = ()

    def effective(self) -> tuple:
        """What actually reaches the query engine; inert filters do not count."""
        return (
            self.search.strip(),
            tuple(f.wire() for f in active_filters(list(self.filters))),
            tuple(s.wire() for s in self.sort),
        )

    def to_spec(self, *, cursor: Optional[int], limit: int) -> QuerySpec:
        return QuerySpec(
            search=self.search,
            filters=list(self.filters),
            sort=list(self.sort),
            cursor=cursor,
            limit=limit,
        )


class RowCache:
    """
    Client-side state for one table's grid. Must be used from a running
    event loop; mutation entry points return the task doing the request
    so callers may await it, but never have to.
    """

    def __init__(
        self,
        transport,
        table_id: str,
        *,
        page_size: Optional[int] = None,
        lookahead: Optional[int] = None,
        search_debounce: Optional[float] = None,
        query_debounce: Optional[float] = None,
        on_error: Optional[Callable[[GridError], None]] = None,
    ):
        self.transport = transport
        self.table_id = table_id
        self.page_size = page_size or settings.CLIENT_PAGE_SIZE
        self.lookahead = settings.FETCH_LOOKAHEAD if lookahead is None else lookahead
        self.search_debounce = (
            settings.SEARCH_DEBOUNCE_MS / 1000 if search_debounce is None else search_debounce
        )
        self.query_debounce = (
            settings.QUERY_DEBOUNCE_MS / 1000 if query_debounce is None else query_debounce
        )
        self.on_error = on_error

        # catalog
        self.columns: List[CachedColumn] = []
        self.optimistic_columns: List[CachedColumn] = []
        self.hidden_columns: Set[str] = set()
        self._deleting_columns: Set[str] = set()

        # server pages
        self._rows: List[CachedRow] = []
        self._by_id: Dict[RowId, CachedRow] = {}
        self.next_cursor: Optional[int] = None
        self.has_next_page = False
        self._awaiting_first_page = True
        self._generation = 0
        self._fetch_seq = 0
        self._fetch_task: Optional[asyncio.Task] = None

        # optimistic overlay
        self.optimistic_rows: List[CachedRow] = []
        self.local_edits: Dict[RowId, Dict[str, LocalEdit]] = {}
        self._pending_cells: Dict[CellKey, int] = {}
        self._edit_seq = 0

        # live query
        self.query = QueryState()
        self._pending_query = QueryState()
        self._debounce_task: Optional[asyncio.Task] = None

        self._tasks: Set[asyncio.Task] = set()
        # most recent failures only; on_error sees every one
        self.errors: Deque[GridError] = deque(maxlen=ERROR_HISTORY)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._rows) + len(self.optimistic_rows)

    @property
    def server_row_count(self) -> int:
        return len(self._rows)

    @property
    def rows(self) -> List[CachedRow]:
        return self._rows + self.optimistic_rows

    def row_at(self, index: int) -> Optional[CachedRow]:
        if 0 <= index < len(self._rows):
            return self._rows[index]
        index -= len(self._rows)
        if 0 <= index < len(self.optimistic_rows):
            return self.optimistic_rows[index]
        return None

    def get_row(self, row_id: RowId) -> Optional[CachedRow]:
        row = self._by_id.get(row_id)
        if row is None:
            row = next((r for r in self.optimistic_rows if r.id == row_id), None)
        return row

    def column(self, column_id: str) -> Optional[CachedColumn]:
        for col in self.columns + self.optimistic_columns:
            if col.id == column_id:
                return col
        return None

    def visible_columns(self) -> List[CachedColumn]:
        real = [
            c
            for c in self.columns
            if c.id not in self.hidden_columns and c.id not in self._deleting_columns
        ]
        return real + list(self.optimistic_columns)

    def cell_value(self, row_id: RowId, column_id: str) -> Any:
        edit = self.local_edits.get(row_id, {}).get(column_id)
        if edit is not None:
            return edit.value
        col = self.column(column_id)
        if is_optimistic_id(row_id) or (col is not None and col.is_optimistic):
            return ""
        row = self._by_id.get(row_id)
        if row is None:
            return ""
        return row.values.get(column_id, "")

    def is_cell_editable(self, row_id: RowId, column_id: str) -> bool:
        col = self.column(column_id)
        return (
            col is not None
            and not col.is_optimistic
            and column_id not in self._deleting_columns
            and row_id in self._by_id
        )

    def is_pending(self, row_id: RowId, column_id: str) -> bool:
        return (row_id, column_id) in self._pending_cells

    # ------------------------------------------------------------------
    # Paging
    # ------------------------------------------------------------------
    async def start(self) -> None:
        """Load the column catalog and the first page."""
        await self.load_columns()
        task = self._restart(clear=True)
        if task is not None:
            await task

    async def load_columns(self) -> List[CachedColumn]:
        cols = await self.transport.get_columns(self.table_id)
        self.columns = [CachedColumn.from_out(c) for c in cols]
        known = {c.id for c in self.columns}
        self._deleting_columns &= known
        return self.columns

    def fetch_next_page(self) -> Optional[asyncio.Task]:
        """
        Start fetching the next page unless one is already in flight
        (returns that one) or there is nothing left to fetch.
        """
        if self._fetch_task is not None and not self._fetch_task.done():
            return self._fetch_task
        if not self._awaiting_first_page and not self.has_next_page:
            return None
        cursor = None if self._awaiting_first_page else self.next_cursor
        self._fetch_task = asyncio.ensure_future(self._fetch_page(self._generation, cursor))
        return self._fetch_task

    def ensure_visible(self, last_visible_index: int) -> Optional[asyncio.Task]:
        """Scroll hook: prefetch when the window nears the end of loaded rows."""
        if not self.has_next_page:
            return None
        if last_visible_index >= len(self._rows) - self.lookahead:
            return self.fetch_next_page()
        return None

    async def _fetch_page(self, generation: int, cursor: Optional[int]) -> Optional[RowsPage]:
        self._fetch_seq += 1
        request_no = self._fetch_seq
        spec = self.query.to_spec(cursor=cursor, limit=self.page_size)
        try:
            page = await self.transport.get_rows(self.table_id, spec)
        except GridError as e:
            if generation == self._generation:
                # rows already on screen stay there
                self._surface(e)
            return None

        if generation != self._generation:
            logger.debug(
                "Discarding stale page (generation %s, current %s)", generation, self._generation
            )
            return None
        self._apply_page(page, first=cursor is None, request_no=request_no)
        return page

    def _apply_page(self, page: RowsPage, *, first: bool, request_no: int) -> None:
        if first:
            self._rows = []
            self._by_id = {}
            self._awaiting_first_page = False
        for r in page.rows:
            if r.id in self._by_id:
                logger.warning("Duplicate row id %s across pages; keeping first occurrence", r.id)
                continue
            row = CachedRow(id=r.id, values=dict(r.values))
            self._rows.append(row)
            self._by_id[row.id] = row
            self._reconcile_edits(row.id, request_no)
        self.next_cursor = page.next_cursor
        self.has_next_page = page.next_cursor is not None

    def _reconcile_edits(self, row_id: RowId, request_no: int) -> None:
        edits = self.local_edits.get(row_id)
        if not edits:
            return
        for column_id, edit in list(edits.items()):
            if edit.confirmed_at is not None and edit.confirmed_at < request_no:
                del edits[column_id]
        if not edits:
            del self.local_edits[row_id]

    def _restart(self, *, clear: bool) -> Optional[asyncio.Task]:
        """
        Drop the accumulated pages and fetch from the first page. With
        clear=False the old rows stay rendered until the new first page lands.
        """
        self._generation += 1
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()
        self._fetch_task = None
        if clear:
            self._rows = []
            self._by_id = {}
        self._awaiting_first_page = True
        self.has_next_page = False
        self.next_cursor = None
        return self.fetch_next_page()

    def invalidate(self) -> Optional[asyncio.Task]:
        """Schema changed: discard every loaded page and refetch from the start."""
        return self._restart(clear=True)

    # ------------------------------------------------------------------
    # Live query (debounced)
    # ------------------------------------------------------------------
    def set_search(self, text: str) -> None:
        self._pending_query = replace(self._pending_query, search=text or "")
        self._schedule_query(self.search_debounce)

    def set_filters(self, filters: Sequence[FilterCondition]) -> None:
        self._pending_query = replace(self._pending_query, filters=tuple(filters))
        self._schedule_query(self.query_debounce)

    def set_sort(self, sort: Sequence[SortItem]) -> None:
        self._pending_query = replace(self._pending_query, sort=tuple(sort))
        self._schedule_query(self.query_debounce)

    @property
    def editing_query(self) -> QueryState:
        """Query as currently edited, including changes still in debounce."""
        return self._pending_query

    def set_column_hidden(self, column_id: str, hidden: bool) -> None:
        if hidden:
            self.hidden_columns.add(column_id)
        else:
            self.hidden_columns.discard(column_id)

    def _schedule_query(self, delay: float) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = asyncio.ensure_future(self._apply_after(delay))

    async def _apply_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self.apply_query(self._pending_query)

    def apply_query(self, query: QueryState) -> Optional[asyncio.Task]:
        """
        Make `query` the live query now. Refetches only when the effective
        query changed; in-flight pages of the old query are discarded.
        """
        self._pending_query = query
        previous, self.query = self.query, query
        if previous.effective() == query.effective() and not self._awaiting_first_page:
            return None
        return self._restart(clear=False)

    def apply_view_config(self, config: ViewConfig) -> Optional[asyncio.Task]:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self.hidden_columns = set(config.hidden_columns)
        return self.apply_query(
            QueryState(
                search=config.search or "",
                filters=tuple(config.filters),
                sort=tuple(config.sort),
            )
        )

    # ------------------------------------------------------------------
    # Cell edits
    # ------------------------------------------------------------------
    def commit_cell(self, row_id: RowId, column_id: str, raw_value: Any) -> Optional[asyncio.Task]:
        """
        Blur/commit of an edited cell. Writes the overlay at once and sends
        the update in the background; a failed update leaves the typed value
        on screen.
        """
        if not self.is_cell_editable(row_id, column_id):
            logger.debug("Ignoring edit of non-editable cell %s/%s", row_id, column_id)
            return None
        col = self.column(column_id)
        value = coerce_for_type(raw_value, col.type)
        if to_text(value) == to_text(self.cell_value(row_id, column_id)).strip():
            return None

        self._edit_seq += 1
        seq = self._edit_seq
        self.local_edits.setdefault(row_id, {})[column_id] = LocalEdit(value=value, seq=seq)
        self._pending_cells[(row_id, column_id)] = seq
        return self._spawn(self._send_cell(row_id, column_id, value, seq))

    async def _send_cell(self, row_id: RowId, column_id: str, value: Any, seq: int) -> bool:
        try:
            await self.transport.update_cell(self.table_id, row_id, column_id, value)
        except GridError as e:
            self._surface(e)
            return False
        else:
            edit = self.local_edits.get(row_id, {}).get(column_id)
            if edit is not None and edit.seq == seq:
                edit.confirmed_at = self._fetch_seq
            return True
        finally:
            if self._pending_cells.get((row_id, column_id)) == seq:
                del self._pending_cells[(row_id, column_id)]

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------
    def add_row(self) -> asyncio.Task:
        placeholder = CachedRow(id=f"{OPTIMISTIC_PREFIX}{uuid4().hex}", is_optimistic=True)
        self.optimistic_rows.append(placeholder)
        return self._spawn(self._create_row(placeholder))

    async def _create_row(self, placeholder: CachedRow) -> Optional[int]:
        try:
            row_id = await self.transport.add_row(self.table_id)
        except GridError as e:
            if placeholder in self.optimistic_rows:
                self.optimistic_rows.remove(placeholder)
            self._surface(e)
            return None
        if self.optimistic_rows:
            self.optimistic_rows.pop(0)
        self._restart(clear=False)
        return row_id

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------
    def add_column(self, name: str, column_type: str, default_value: Any = "") -> asyncio.Task:
        placeholder = CachedColumn(
            id=f"{OPTIMISTIC_PREFIX}col_{uuid4().hex}",
            name=name,
            type=column_type.upper(),
            ordinal=len(self.columns) + len(self.optimistic_columns),
            is_optimistic=True,
        )
        self.optimistic_columns.append(placeholder)
        return self._spawn(self._create_column(placeholder, default_value))

    async def _create_column(self, placeholder: CachedColumn, default_value: Any) -> Optional[CachedColumn]:
        try:
            created = await self.transport.add_column_and_populate(
                self.table_id, placeholder.name, placeholder.type, default_value
            )
        except GridError as e:
            self._surface(e)
            return None
        finally:
            if placeholder in self.optimistic_columns:
                self.optimistic_columns.remove(placeholder)
        col = CachedColumn.from_out(created)
        self.columns.append(col)
        self.invalidate()
        return col

    def delete_column(self, column_id: str) -> asyncio.Task:
        self._deleting_columns.add(column_id)
        return self._spawn(self._remove_column(column_id))

    async def _remove_column(self, column_id: str) -> bool:
        try:
            await self.transport.delete_column(column_id)
        except GridError as e:
            self._deleting_columns.discard(column_id)
            self._surface(e)
            return False
        self.columns = [c for c in self.columns if c.id != column_id]
        self._deleting_columns.discard(column_id)
        self.hidden_columns.discard(column_id)
        for edits in self.local_edits.values():
            edits.pop(column_id, None)
        self.invalidate()
        return True

    async def rename_column(self, column_id: str, name: str) -> Optional[CachedColumn]:
        try:
            renamed = await self.transport.rename_column(column_id, name.strip())
        except GridError as e:
            self._surface(e)
            return None
        for i, col in enumerate(self.columns):
            if col.id == column_id:
                self.columns[i] = CachedColumn.from_out(renamed)
                return self.columns[i]
        return None

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------
    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _surface(self, error: GridError) -> None:
        logger.warning("Grid request failed (%s): %s", error.kind, error.message)
        self.errors.append(error)
        if self.on_error is not None:
            self.on_error(error)

    async def settle(self) -> None:
        """Wait until no debounce, fetch or mutation is outstanding."""
        while True:
            pending = [
                t
                for t in [self._debounce_task, self._fetch_task, *self._tasks]
                if t is not None and not t.done()
            ]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
