"""Tests for normalized error responses and request id propagation."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from repurpose.core.errors import (
    AppError,
    NotFoundError,
    app_error_handler,
    unhandled_exception_handler,
)
from repurpose.core.middleware.request_id import RequestIdMiddleware


def build_app():
    test_app = FastAPI()
    test_app.add_middleware(RequestIdMiddleware)
    test_app.add_exception_handler(AppError, app_error_handler)
    test_app.add_exception_handler(Exception, unhandled_exception_handler)

    @test_app.get("/missing")
    def missing():
        raise NotFoundError("Job not found")

    @test_app.get("/boom")
    def boom():
        raise RuntimeError("secret internals")

    return test_app


def test_app_error_has_standard_shape():
    client = TestClient(build_app())
    resp = client.get("/missing")
    assert resp.status_code == 404
    body = resp.json()
    rid = resp.headers.get("x-request-id")
    assert body == {
        "error": {"code": "not_found", "message": "Job not found", "request_id": rid},
        "detail": "Job not found",
    }


def test_incoming_request_id_is_echoed():
    client = TestClient(build_app())
    resp = client.get("/missing", headers={"x-request-id": "req-123"})
    assert resp.headers["x-request-id"] == "req-123"
    assert resp.json()["error"]["request_id"] == "req-123"


def test_unhandled_exception_is_normalized():
    client = TestClient(build_app(), raise_server_exceptions=False)
    resp = client.get("/boom")
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["code"] == "internal_error"
    assert body["detail"] == "Unexpected error"
    assert "secret internals" not in resp.text


def test_success_responses_carry_request_id(client):
    resp = client.get("/healthz")
    assert resp.headers.get("x-request-id")
