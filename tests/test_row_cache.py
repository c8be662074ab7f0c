# File: /tests/test_row_cache.py | Version: 1.0 | Title: Client row cache (paging, overlay, optimistic rollback)
from __future__ import annotations

import asyncio
import logging

import pytest

from fake_transport import TABLE_ID, FakeTransport, drain, people
from gridbase.client.row_cache import ERROR_HISTORY, OPTIMISTIC_PREFIX, QueryState, RowCache
from gridbase.core.errors import TransientWriteError
from gridbase.schemas.filters import FilterCondition, SortItem
from gridbase.schemas.grid import RowOut, RowsPage
from gridbase.schemas.view import ViewConfig


async def _started(rows=3, page_size=50, **kwargs):
    transport = FakeTransport(rows=people(rows))
    cache = RowCache(
        transport,
        TABLE_ID,
        page_size=page_size,
        search_debounce=0.01,
        query_debounce=0.01,
        **kwargs,
    )
    await cache.start()
    return transport, cache


def _ids(cache):
    return [row.id for row in cache.rows]


def _names(cols):
    return [c.name for c in cols]


# ---- paging ----


@pytest.mark.asyncio
async def test_start_loads_catalog_and_first_page():
    transport, cache = await _started(rows=5, page_size=2)
    assert _names(cache.visible_columns()) == ["Name", "Age"]
    assert _ids(cache) == [1, 2]
    assert cache.has_next_page
    assert cache.next_cursor == 2


@pytest.mark.asyncio
async def test_rapid_scroll_issues_one_fetch_per_cursor():
    transport, cache = await _started(rows=7, page_size=3, lookahead=1)
    assert cache.ensure_visible(0) is None

    transport.hold("get_rows")
    first = cache.ensure_visible(2)
    assert first is not None
    assert cache.ensure_visible(2) is first
    assert cache.fetch_next_page() is first
    transport.release("get_rows")
    await first

    assert transport.count("get_rows") == 2
    assert _ids(cache) == [1, 2, 3, 4, 5, 6]

    await cache.fetch_next_page()
    assert _ids(cache) == list(range(1, 8))
    assert not cache.has_next_page
    assert cache.fetch_next_page() is None
    assert cache.ensure_visible(6) is None


@pytest.mark.asyncio
async def test_duplicate_row_ids_render_once(caplog):
    transport = FakeTransport()
    transport.scripted_pages = [
        RowsPage(rows=[RowOut(id=1, values={}), RowOut(id=2, values={})], next_cursor=2),
        RowsPage(rows=[RowOut(id=2, values={}), RowOut(id=3, values={})], next_cursor=None),
    ]
    cache = RowCache(transport, TABLE_ID, page_size=2)
    await cache.start()
    with caplog.at_level(logging.WARNING, logger="gridbase.client.row_cache"):
        await cache.fetch_next_page()

    assert _ids(cache) == [1, 2, 3]
    assert any("Duplicate row id 2" in rec.getMessage() for rec in caplog.records)


@pytest.mark.asyncio
async def test_failed_fetch_keeps_rendered_rows():
    transport, cache = await _started()
    seen = []
    cache.on_error = seen.append

    transport.fail("get_rows")
    cache.apply_query(QueryState(search="b"))
    await drain(cache)

    assert _ids(cache) == [1, 2, 3]
    assert seen and seen[-1].kind == "NOT_FOUND"


# ---- live query ----


@pytest.mark.asyncio
async def test_search_is_debounced_to_last_value():
    transport, cache = await _started()
    cache.set_search("b")
    cache.set_search("bo")
    await drain(cache)

    assert transport.count("get_rows") == 2
    assert transport.calls[-1][1].search == "bo"
    assert _ids(cache) == [1]


@pytest.mark.asyncio
async def test_inert_filter_edits_do_not_refetch():
    transport, cache = await _started()
    half_edited = FilterCondition(field="name", type="TEXT", op="contains", value="")
    assert cache.apply_query(QueryState(filters=(half_edited,))) is None
    assert transport.count("get_rows") == 1


@pytest.mark.asyncio
async def test_superseded_fetch_is_cancelled():
    transport, cache = await _started()
    transport.hold("get_rows")
    old = cache.apply_query(QueryState(search="b"))
    new = cache.apply_query(QueryState(search="c"))
    transport.release("get_rows")
    await drain(cache)

    assert old.cancelled()
    assert new.done() and not new.cancelled()
    assert _ids(cache) == [3]


@pytest.mark.asyncio
async def test_resolved_stale_page_is_discarded():
    transport, cache = await _started()
    transport.hold("get_rows")
    # a fetch issued under the old query that nobody cancels
    stale = asyncio.ensure_future(cache._fetch_page(cache._generation, None))
    await asyncio.sleep(0)
    cache.apply_query(QueryState(search="c"))
    transport.release("get_rows")

    assert await stale is None
    await drain(cache)
    assert _ids(cache) == [3]


@pytest.mark.asyncio
async def test_view_config_sets_query_and_hidden_columns():
    transport, cache = await _started()
    cache.apply_view_config(ViewConfig(search="al", hidden_columns=["age"]))
    await drain(cache)
    assert _names(cache.visible_columns()) == ["Name"]
    assert _ids(cache) == [2]


# ---- cell edits ----


@pytest.mark.asyncio
async def test_local_edit_wins_until_refetch_after_confirmation():
    transport, cache = await _started()
    transport.hold("update_cell")
    task = cache.commit_cell(1, "name", "Bob")

    assert cache.cell_value(1, "name") == "Bob"
    assert cache.get_row(1).values["name"] == "Bo"
    assert cache.is_pending(1, "name")

    transport.release("update_cell")
    assert await task is True
    assert not cache.is_pending(1, "name")
    assert cache.cell_value(1, "name") == "Bob"

    cache.invalidate()
    await drain(cache)
    assert cache.local_edits == {}
    assert cache.cell_value(1, "name") == "Bob"


@pytest.mark.asyncio
async def test_edit_confirmed_during_inflight_fetch_survives_that_page():
    transport, cache = await _started()
    transport.hold("get_rows")
    fetch = cache.apply_query(QueryState(sort=(SortItem(column_id="name"),)))

    assert await cache.commit_cell(1, "name", "Bob") is True
    transport.release("get_rows")
    await fetch

    assert "name" in cache.local_edits.get(1, {})
    cache.invalidate()
    await drain(cache)
    assert cache.local_edits == {}


@pytest.mark.asyncio
async def test_failed_edit_is_not_reverted():
    transport, cache = await _started()
    transport.fail("update_cell")
    task = cache.commit_cell(2, "age", " 40 ")
    assert await task is False

    assert cache.cell_value(2, "age") == 40
    assert not cache.is_pending(2, "age")
    assert isinstance(cache.errors[-1], TransientWriteError)

    cache.invalidate()
    await drain(cache)
    assert cache.cell_value(2, "age") == 40


@pytest.mark.asyncio
async def test_unchanged_edit_is_not_sent():
    transport, cache = await _started()
    assert cache.commit_cell(1, "name", "  Bo ") is None
    assert cache.commit_cell(1, "age", "30") is None
    assert transport.count("update_cell") == 0


@pytest.mark.asyncio
async def test_concurrent_edits_each_settle():
    transport, cache = await _started()
    transport.hold("update_cell")
    a = cache.commit_cell(1, "name", "X")
    b = cache.commit_cell(1, "age", "31")
    c = cache.commit_cell(1, "name", "Y")
    assert cache.is_pending(1, "name") and cache.is_pending(1, "age")

    transport.release("update_cell")
    assert await asyncio.gather(a, b, c) == [True, True, True]
    assert not cache.is_pending(1, "name")
    assert cache.cell_value(1, "name") == "Y"
    assert transport.rows[1] == {"name": "Y", "age": 31}


# ---- optimistic rows ----


@pytest.mark.asyncio
async def test_optimistic_row_renders_after_server_rows_then_resolves():
    transport, cache = await _started()
    transport.hold("add_row")
    task = cache.add_row()

    assert len(cache) == 4
    placeholder = cache.row_at(3)
    assert placeholder.id.startswith(OPTIMISTIC_PREFIX)
    assert cache.cell_value(placeholder.id, "name") == ""
    assert not cache.is_cell_editable(placeholder.id, "name")
    assert cache.commit_cell(placeholder.id, "name", "x") is None

    transport.release("add_row")
    assert await task == 4
    await drain(cache)
    assert _ids(cache) == [1, 2, 3, 4]
    assert cache.optimistic_rows == []


@pytest.mark.asyncio
async def test_failed_row_add_removes_placeholder():
    transport, cache = await _started()
    transport.fail("add_row")
    assert await cache.add_row() is None
    assert len(cache) == 3
    assert cache.optimistic_rows == []
    assert cache.errors[-1].kind == "TRANSIENT_WRITE_FAILURE"


@pytest.mark.asyncio
async def test_error_history_keeps_only_recent_failures():
    transport, cache = await _started()
    seen = []
    cache.on_error = seen.append
    transport.fail("add_row")
    for _ in range(ERROR_HISTORY + 5):
        assert await cache.add_row() is None

    assert len(seen) == ERROR_HISTORY + 5
    assert len(cache.errors) == ERROR_HISTORY
    assert cache.errors[-1] is seen[-1]
    assert cache.errors[0] is seen[5]


@pytest.mark.asyncio
async def test_placeholders_resolve_first_in_first_out():
    transport, cache = await _started()
    transport.hold("add_row")
    first = cache.add_row()
    second = cache.add_row()
    first_id = cache.optimistic_rows[0].id
    second_id = cache.optimistic_rows[1].id

    transport.release("add_row")
    await first
    assert [r.id for r in cache.optimistic_rows] in ([second_id], [])
    assert first_id not in [r.id for r in cache.optimistic_rows]
    await second
    await drain(cache)
    assert _ids(cache) == [1, 2, 3, 4, 5]


# ---- optimistic columns ----


@pytest.mark.asyncio
async def test_optimistic_column_add_then_confirm():
    transport, cache = await _started()
    transport.hold("add_column_and_populate")
    task = cache.add_column("Score", "number")

    cols = cache.visible_columns()
    assert _names(cols) == ["Name", "Age", "Score"]
    assert cols[-1].is_optimistic and cols[-1].type == "NUMBER"
    assert cache.cell_value(1, cols[-1].id) == ""
    assert not cache.is_cell_editable(1, cols[-1].id)

    transport.release("add_column_and_populate")
    created = await task
    await drain(cache)
    cols = cache.visible_columns()
    assert _names(cols) == ["Name", "Age", "Score"]
    assert not any(c.is_optimistic for c in cols)
    assert cache.get_row(1).values[created.id] == ""


@pytest.mark.asyncio
async def test_failed_column_add_removes_placeholder():
    transport, cache = await _started()
    transport.fail("add_column_and_populate")
    assert await cache.add_column("Score", "TEXT") is None
    assert _names(cache.visible_columns()) == ["Name", "Age"]
    assert cache.optimistic_columns == []


@pytest.mark.asyncio
async def test_column_delete_hides_immediately_and_refetches():
    transport, cache = await _started()
    transport.hold("delete_column")
    task = cache.delete_column("age")
    assert _names(cache.visible_columns()) == ["Name"]
    assert not cache.is_cell_editable(1, "age")

    transport.release("delete_column")
    assert await task is True
    await drain(cache)
    assert [c.id for c in cache.columns] == ["name"]
    assert transport.count("get_rows") == 2


@pytest.mark.asyncio
async def test_failed_column_delete_is_rolled_back():
    transport, cache = await _started()
    transport.fail("delete_column")
    assert await cache.delete_column("age") is False
    assert _names(cache.visible_columns()) == ["Name", "Age"]
    assert cache.errors[-1].kind == "TRANSIENT_WRITE_FAILURE"
    assert transport.count("get_rows") == 1


@pytest.mark.asyncio
async def test_rename_column_updates_catalog_without_refetch():
    transport, cache = await _started()
    renamed = await cache.rename_column("name", "  Full name ")
    assert renamed.name == "Full name"
    assert _names(cache.visible_columns()) == ["Full name", "Age"]
    assert transport.count("get_rows") == 1
