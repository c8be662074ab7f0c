from gridbase.client.row_cache import OPTIMISTIC_PREFIX, CachedColumn, CachedRow, QueryState, RowCache  # noqa: F401
from gridbase.client.transport import HttpGridTransport  # noqa: F401
from gridbase.client.views import ViewSession  # noqa: F401
