# File: tests/test_hardening_smoke.py | Version: 2.0 | Title: Logging, sentry, error handlers and health probes
import json
import logging

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from gridbase.core.error_handlers import register_exception_handlers
from gridbase.core.errors import ConflictError, NotFoundError, TransientWriteError
from gridbase.core.logging import JsonConsoleFormatter, build_logging_config, configure_logging
from gridbase.observability.sentry import init_sentry_if_configured


def test_configure_logging_plain_and_json(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("LOG_JSON", "false")
    configure_logging()
    logging.getLogger(__name__).debug("plain-log")
    assert logging.getLogger().level == logging.DEBUG

    monkeypatch.setenv("LOG_LEVEL", "INFO")
    monkeypatch.setenv("LOG_JSON", "true")
    configure_logging()
    logging.getLogger(__name__).info("json-log")
    assert logging.getLogger("httpx").level == logging.WARNING


def test_json_formatter_emits_one_object_per_record():
    record = logging.LogRecord("gridbase.test", logging.WARNING, __file__, 1, "cell %s failed", ("r1",), None)
    payload = json.loads(JsonConsoleFormatter().format(record))
    assert payload == {"level": "WARNING", "logger": "gridbase.test", "message": "cell r1 failed"}


def test_build_logging_config_quiets_transport_loggers():
    cfg = build_logging_config("DEBUG", use_json=False)
    assert cfg["root"]["level"] == "DEBUG"
    assert cfg["loggers"]["httpcore"]["level"] == "WARNING"
    assert "format" in cfg["formatters"]["default"]


def test_sentry_init_disabled_then_enabled(monkeypatch):
    monkeypatch.delenv("SENTRY_DSN", raising=False)
    assert init_sentry_if_configured() is False

    sentry_sdk = pytest.importorskip("sentry_sdk")
    captured = {}
    monkeypatch.setattr(sentry_sdk, "init", lambda **kw: captured.update(kw))
    monkeypatch.setattr(sentry_sdk, "set_tag", lambda k, v: captured.update({f"tag:{k}": v}))
    monkeypatch.setenv("SENTRY_DSN", "https://dummy-public@o0.ingest.sentry.io/0")
    monkeypatch.setenv("SENTRY_TRACES_SAMPLE_RATE", "0.05")

    assert init_sentry_if_configured() is True
    assert captured["traces_sample_rate"] == 0.05
    assert captured["release"].startswith("gridbase@")
    assert captured["tag:service"] == "gridbase-api"


def _errors_app():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/missing")
    def missing():
        raise NotFoundError("Row 7 not found")

    @app.get("/dup")
    def dup():
        raise ConflictError("View 'A' already exists")

    @app.get("/write")
    def write():
        raise TransientWriteError("disk full")

    @app.get("/http")
    def http():
        raise HTTPException(status_code=404, detail="Table not found")

    @app.get("/boom")
    def boom():
        raise RuntimeError("secret internals")

    @app.get("/typed/{n}")
    def typed(n: int):
        return {"n": n}

    return app


def test_standard_error_shapes():
    client = TestClient(_errors_app(), raise_server_exceptions=False)

    r = client.get("/missing")
    assert r.status_code == 404
    assert r.json() == {"error": {"code": "NOT_FOUND", "message": "Row 7 not found"}}

    r = client.get("/dup")
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "CONFLICT"

    r = client.get("/write")
    assert r.status_code == 500
    assert r.json()["error"]["message"] == "disk full"

    r = client.get("/http")
    assert r.json() == {"error": {"code": "NOT_FOUND", "message": "Table not found"}}

    r = client.get("/typed/abc")
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "UNPROCESSABLE_ENTITY"

    r = client.get("/boom")
    assert r.status_code == 500
    assert "secret" not in r.text


def test_health_and_ready(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    ready = client.get("/readyz")
    assert ready.status_code == 200
    assert ready.json() == {"status": "ok", "db": "ok"}
