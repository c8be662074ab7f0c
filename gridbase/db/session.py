# File: /gridbase/db/session.py | Version: 1.2 | Title: SQLAlchemy Session using Central Settings
import sqlite3
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from gridbase.core.config import settings
from gridbase.core.values import fold_text, to_number

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL


@event.listens_for(Engine, "connect")
def _register_sqlite_functions(dbapi_connection, _connection_record):
    # Applies to every engine, including the ones tests build
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    dbapi_connection.create_function("grid_number", 1, to_number, deterministic=True)
    dbapi_connection.create_function("grid_fold", 1, fold_text, deterministic=True)


connect_args = {"check_same_thread": False} if SQLALCHEMY_DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    from gridbase.db.base_class import Base
    import gridbase.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
