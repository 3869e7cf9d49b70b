"""Tests for structured logging and request_id propagation."""

import json
import logging

from fastapi.testclient import TestClient

from trainerhub.core.logging import ContextFilter, JsonFormatter, PrettyFormatter, bind_principal, log_event, principal_ctx_var
from trainerhub.core.metrics import http_requests_total
from trainerhub.main import app


def test_request_id_in_response_and_logs(caplog):
    client = TestClient(app)
    with caplog.at_level(logging.INFO, logger="trainerhub"):
        response = client.get("/healthz")
    rid = response.headers.get("x-request-id")
    assert rid
    records = [r for r in caplog.records if getattr(r, "request_id", None) == rid]
    assert records, "Expected logs to contain request_id from response"
    assert len({r.request_id for r in records}) == 1


def test_log_event_fields(caplog):
    with caplog.at_level(logging.INFO, logger="trainerhub"):
        log_event("warning", "interaction.rolled_back", user_id="user-1", error_code="mutation_failed", extra={"kind": "like", "reason": "x" * 600})
    (record,) = [r for r in caplog.records if r.getMessage() == "interaction.rolled_back"]
    assert record.levelno == logging.WARNING
    assert record.user_id == "user-1"
    assert record.kind == "like"
    assert record.reason.endswith("...<truncated>")

    payload = json.loads(JsonFormatter().format(record))
    assert payload["error_code"] == "mutation_failed"
    assert payload["logger"] == "trainerhub"


def test_requests_are_counted():
    client = TestClient(app)
    client.get("/healthz")
    assert http_requests_total.value({"method": "GET", "path": "/healthz", "status": "200"}) == 1
    body = client.get("/metrics").text
    assert "http_requests_total" in body


def test_context_filter_stamps_bound_principal():
    record = logging.LogRecord("trainerhub", logging.INFO, __file__, 1, "plan.viewed", None, None)
    record.plan_id = "plan-1"
    token = bind_principal("user-9")
    try:
        ContextFilter().filter(record)
    finally:
        principal_ctx_var.reset(token)

    assert record.user_id == "user-9"
    assert record.request_id is None
    line = PrettyFormatter().format(record)
    assert "[user=user-9] plan.viewed plan_id=plan-1" in line
