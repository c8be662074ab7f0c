# File: /gridbase/db/__init__.py | Version: 1.0 | Path: /gridbase/db/__init__.py
# Import models so SQLAlchemy Base knows about them when metadata is created
import gridbase.models  # noqa: F401

from .base_class import Base
from .session import SessionLocal, engine, get_db, init_db

__all__ = ["Base", "get_db", "init_db", "SessionLocal", "engine"]
