"""
Tests for the structured logging middleware and PII masking.
"""

import json
import logging
import sys

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.middleware.logging import (
    StructuredFormatter,
    StructuredLoggingMiddleware,
    is_sensitive_field,
    mask_headers,
    mask_pii,
    mask_sensitive_data,
    setup_logging,
    should_log_request,
)


class TestSensitiveFieldDetection:
    """Test sensitive field name detection."""

    @pytest.mark.parametrize("field_name,expected", [
        ("password", True),
        ("access_token", True),
        ("api-key", True),
        ("client_secret", True),
        ("Authorization", True),
        ("signature_ref", True),
        ("national_id", True),
        ("first_name", False),
        ("salary", False),
        ("job_id", False),
    ])
    def test_field_names(self, field_name, expected):
        assert is_sensitive_field(field_name) is expected


class TestMasking:
    """Test masking of values and structures."""

    def test_email_and_phone_masked(self):
        text = "Contact jane.doe@example.com or +254 712 345 678"
        masked = mask_pii(text)

        assert "jane.doe@example.com" not in masked
        assert "[EMAIL]" in masked
        assert "[PHONE]" in masked

    def test_nested_structures(self):
        data = {
            "application": {"email": "jane@example.com", "first_name": "Jane"},
            "signature_ref": "sig-123",
            "answers": [{"answer": "call 0712 345 678"}],
        }
        masked = mask_sensitive_data(data)

        assert masked["application"]["email"] == "[EMAIL]"
        assert masked["application"]["first_name"] == "Jane"
        assert masked["signature_ref"] == "[REDACTED]"
        assert masked["answers"][0]["answer"] != data["answers"][0]["answer"]

    def test_max_depth(self):
        data = {"a": {"b": {"c": "deep"}}}
        assert mask_sensitive_data(data, max_depth=1)["a"]["b"] == "[MAX_DEPTH_EXCEEDED]"

    def test_non_string_values_untouched(self):
        assert mask_sensitive_data({"score": 45.0, "ok": True}) == {"score": 45.0, "ok": True}

    def test_headers(self):
        masked = mask_headers({
            "authorization": "Bearer abc.def",
            "cookie": "session=1",
            "x-user-role": "hr",
        })

        assert masked["authorization"] == "Bearer [REDACTED]"
        assert masked["cookie"] == "[REDACTED]"
        assert masked["x-user-role"] == "hr"

    @pytest.mark.parametrize("path,expected", [
        ("/health", False),
        ("/ready", False),
        ("/api/v1/applications", True),
    ])
    def test_should_log_request(self, path, expected):
        assert should_log_request(path) is expected


class TestStructuredFormatter:
    """Test JSON log rendering."""

    def test_extra_fields_included(self):
        record = logging.LogRecord("recruitment", logging.INFO, __file__, 1, "scored", None, None)
        record.application_id = 12

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "scored"
        assert data["level"] == "INFO"
        assert data["application_id"] == 12

    def test_exception_info(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "recruitment", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )

        data = json.loads(StructuredFormatter().format(record))
        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "boom"


class TestSetupLogging:
    """Test root logger configuration."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_handler(self):
        setup_logging("DEBUG", json_logs=True)
        root = logging.getLogger()

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_plain_handler(self):
        setup_logging("warning", json_logs=False)
        root = logging.getLogger()

        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, StructuredFormatter)


class TestStructuredLoggingMiddleware:
    """Test request logging."""

    @pytest.fixture
    def app(self):
        app = FastAPI()
        app.add_middleware(StructuredLoggingMiddleware, log_request_body=True, max_body_size=64)

        @app.post("/echo")
        async def echo(payload: dict):
            return payload

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        return app

    def test_request_id_generated(self, app):
        response = TestClient(app).post("/echo", json={"a": 1})

        assert response.status_code == 200
        assert response.headers["x-request-id"]

    def test_request_id_propagated(self, app):
        response = TestClient(app).post("/echo", json={}, headers={"x-request-id": "req-1"})
        assert response.headers["x-request-id"] == "req-1"

    def test_body_logged_masked(self, app, caplog):
        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            TestClient(app).post("/echo", json={"email": "jane@example.com"})

        started = [json.loads(r.getMessage()) for r in caplog.records if "request_started" in r.getMessage()]
        assert started[0]["body"] == {"email": "[EMAIL]"}

    def test_large_body_truncated(self, app, caplog):
        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            TestClient(app).post("/echo", json={"text": "x" * 200})

        started = [json.loads(r.getMessage()) for r in caplog.records if "request_started" in r.getMessage()]
        assert started[0]["body"]["_truncated"] is True

    def test_health_not_logged(self, app, caplog):
        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            response = TestClient(app).get("/health")

        assert response.headers["x-request-id"]
        assert not any("request_started" in r.getMessage() for r in caplog.records)
