# ruff: noqa: E402
# File: /tests/conftest.py
import os
import pathlib
import sys

# Point the app at a throwaway database before anything imports settings
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

# Make repo root importable as "gridbase"
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from gridbase.db.base_class import Base
from gridbase.db.session import engine
from gridbase.main import app

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def _create_schema():
    Base.metadata.create_all(bind=engine)
    try:
        yield
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session():
    connection = engine.connect()
    trans = connection.begin()
    try:
        session = TestingSessionLocal(bind=connection)
        yield session
    finally:
        session.close()
        trans.rollback()
        connection.close()


@pytest.fixture()
def override_db(db_session):
    from gridbase.db.session import get_db  # late import to avoid circulars

    def _override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _override_get_db
    yield db_session
    app.dependency_overrides.clear()


@pytest.fixture()
def client(override_db):
    with TestClient(app) as c:
        yield c


# ---- shared builders ----


def make_table(client, name="T", columns=None, seed_rows=0):
    payload = {"name": name, "seedRows": seed_rows}
    if columns is not None:
        payload["columns"] = [{"name": n, "type": t} for n, t in columns]
    r = client.post("/tables", json=payload)
    assert r.status_code == 200, r.text
    body = r.json()
    return body["id"], {c["name"]: c["id"] for c in body["columns"]}


def add_row(client, table_id, values=None):
    r = client.post(f"/tables/{table_id}/rows")
    assert r.status_code == 200, r.text
    row_id = r.json()["id"]
    for col_id, value in (values or {}).items():
        u = client.put(f"/tables/{table_id}/rows/{row_id}/cells/{col_id}", json={"value": value})
        assert u.status_code == 200, u.text
    return row_id


def query(client, table_id, **spec):
    r = client.post(f"/tables/{table_id}/rows/query", json=spec)
    assert r.status_code == 200, r.text
    return r.json()


def query_ids(client, table_id, **spec):
    return [row["id"] for row in query(client, table_id, **spec)["rows"]]


def collect_ids(client, table_id, limit, **spec):
    """Follow nextCursor until exhausted."""
    ids, cursor = [], None
    while True:
        page = query(client, table_id, cursor=cursor, limit=limit, **spec)
        ids.extend(row["id"] for row in page["rows"])
        cursor = page["nextCursor"]
        if cursor is None:
            return ids
