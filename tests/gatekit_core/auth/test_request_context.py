"""Unit tests for the request-context middleware."""

import uuid

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from gatekit_core.auth.middleware import REQUEST_ID_HEADER, RequestContextMiddleware


@pytest.fixture
def client():
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware)

    @app.get("/echo")
    def echo(request: Request):
        return {"request_id": request.state.request_id}

    return TestClient(app)


class TestRequestContextMiddleware:
    def test_echoes_supplied_request_id(self, client):
        response = client.get("/echo", headers={"X-Request-Id": "req-abc"})

        assert response.headers[REQUEST_ID_HEADER] == "req-abc"
        assert response.json()["request_id"] == "req-abc"

    def test_generates_request_id_when_missing(self, client):
        response = client.get("/echo")

        request_id = response.headers[REQUEST_ID_HEADER]
        assert uuid.UUID(request_id)
        assert response.json()["request_id"] == request_id
