# File: /gridbase/main.py | Version: 1.0 | Title: FastAPI App (router includes + schema bootstrap)
from __future__ import annotations

import importlib
import importlib.util
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gridbase.core.config import settings
from gridbase.core.logging import configure_logging
from gridbase.db.session import init_db
from gridbase.observability.sentry import init_sentry_if_configured

# Initialize logging & observability
configure_logging()
init_sentry_if_configured()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_db()
    yield


# App
app = FastAPI(title="Gridbase API", lifespan=lifespan)


def include_if_exists(module_path: str, attr_name: str = "router") -> bool:
    spec = importlib.util.find_spec(module_path)
    if not spec:
        return False
    mod = importlib.import_module(module_path)
    router = getattr(mod, attr_name, None)
    if router is not None:
        app.include_router(router)
        return True
    return False


include_if_exists("gridbase.routers.tables")
include_if_exists("gridbase.routers.rows")
include_if_exists("gridbase.routers.views")
include_if_exists("gridbase.routers.health")

# Optional standardized error responses
if getattr(settings, "ENABLE_STD_ERRORS", False):
    from gridbase.core.error_handlers import register_exception_handlers

    register_exception_handlers(app)
