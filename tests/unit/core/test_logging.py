"""
Tests for structured request logging and masking.
"""

import json
import logging
from unittest.mock import Mock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.middleware.logging import (
    StructuredFormatter,
    StructuredLoggingMiddleware,
    get_client_ip,
    mask_headers,
    mask_sensitive_data,
)


class TestMasking:
    def test_sensitive_keys_redacted(self):
        masked = mask_sensitive_data({"email": "a@b.io", "password": "x", "nested": {"token": "t"}})

        assert masked["password"] == "[REDACTED]"
        assert masked["nested"]["token"] == "[REDACTED]"
        assert masked["email"] == "[EMAIL]"

    def test_emails_in_strings_masked(self):
        assert mask_sensitive_data("contact jane@example.com") == "contact [EMAIL]"

    def test_depth_limit(self):
        data = current = {}
        for _ in range(15):
            current["child"] = {}
            current = current["child"]
        assert "[MAX_DEPTH_EXCEEDED]" in json.dumps(mask_sensitive_data(data))

    def test_authorization_header_keeps_scheme(self):
        masked = mask_headers({"Authorization": "Bearer abc.def", "Accept": "application/json"})

        assert masked["Authorization"] == "Bearer [REDACTED]"
        assert masked["Accept"] == "application/json"

    def test_client_ip_masked(self):
        request = Mock()
        request.headers = {"x-forwarded-for": "198.51.100.23"}
        assert get_client_ip(request) == "198.51.100.xxx"


class TestStructuredLoggingMiddleware:
    def _client(self) -> TestClient:
        app = FastAPI()
        app.add_middleware(StructuredLoggingMiddleware)

        @app.get("/api/v1/jobs")
        async def jobs():
            return {"jobs": []}

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        return TestClient(app)

    def test_request_id_echoed(self):
        response = self._client().get("/api/v1/jobs", headers={"x-request-id": "req-1"})
        assert response.headers["x-request-id"] == "req-1"

    def test_request_id_generated(self):
        response = self._client().get("/api/v1/jobs")
        assert len(response.headers["x-request-id"]) == 36

    def test_logs_start_and_completion(self, caplog):
        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            self._client().get("/api/v1/jobs", headers={"Authorization": "Bearer secret"})

        events = [json.loads(r.getMessage()) for r in caplog.records if r.name == "core.middleware.logging"]
        assert [e["event"] for e in events] == ["request_started", "request_completed"]
        assert events[0]["headers"]["authorization"] == "Bearer [REDACTED]"
        assert events[1]["status_code"] == 200

    def test_health_not_logged(self, caplog):
        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            self._client().get("/health")
        assert not [r for r in caplog.records if r.name == "core.middleware.logging"]


class TestStructuredFormatter:
    def test_formats_json(self):
        record = logging.LogRecord("app", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["logger"] == "app"
