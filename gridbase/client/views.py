# File: /gridbase/client/views.py | Version: 1.0 | Title: Saved view session (select, reconcile, create)
from __future__ import annotations

import logging
from typing import List, Optional

from gridbase.client.row_cache import RowCache
from gridbase.core.config import settings
from gridbase.schemas.filters import active_filters
from gridbase.schemas.view import ViewConfig, ViewOut

logger = logging.getLogger(__name__)


class ViewSession:
    """
    Tracks the selected view of one table and keeps its stored config in
    step with the cache's live query. `save_current_view_config` is safe to
    call after every state change; it writes only when something differs.
    """

    def __init__(self, transport, cache: RowCache, default_view_name: Optional[str] = None):
        self.transport = transport
        self.cache = cache
        self.default_view_name = default_view_name or settings.DEFAULT_VIEW_NAME
        self.views: List[ViewOut] = []
        self.current: Optional[ViewOut] = None
        self._persisted: Optional[dict] = None

    @property
    def table_id(self) -> str:
        return self.cache.table_id

    async def load(self) -> Optional[ViewOut]:
        self.views = await self.transport.get_views(self.table_id)
        if not self.views:
            return None
        chosen = next((v for v in self.views if v.name == self.default_view_name), self.views[0])
        self.select_view(chosen)
        return chosen

    def select_view(self, view: ViewOut):
        self.current = view
        self._persisted = view.config.wire()
        return self.cache.apply_view_config(view.config)

    def current_config(self) -> ViewConfig:
        """The live editing state as a storable config; inert filters are left out."""
        query = self.cache.editing_query
        return ViewConfig(
            filters=active_filters(list(query.filters)),
            sort=list(query.sort),
            hidden_columns=sorted(self.cache.hidden_columns),
            search=query.search,
        )

    async def save_current_view_config(self) -> bool:
        if self.current is None:
            return False
        config = self.current_config()
        if config.wire() == self._persisted:
            return False
        saved = await self.transport.save_view(self.table_id, self.current.name, config)
        self._persisted = saved.config.wire()
        self.current = saved
        self.views = [saved if v.name == saved.name else v for v in self.views]
        logger.debug("Saved view %s/%s", self.table_id, saved.name)
        return True

    async def create_view(self, name: str) -> ViewOut:
        view = await self.transport.create_view(self.table_id, name.strip())
        self.views.append(view)
        return view
