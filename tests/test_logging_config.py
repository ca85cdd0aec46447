"""
Tests for structured logging and request context
"""
import logging

from classmate_hub.logging_config import (
    RequestContext,
    StructuredFormatter,
    _request_context,
    bind_user,
    get_request_id,
)


def make_record(message="hello"):
    return logging.LogRecord("classmate_hub.test", logging.INFO, __file__, 1, message, None, None)


class TestStructuredFormatter:
    def test_outside_a_request(self):
        line = StructuredFormatter(env="test").format(make_record())
        assert "[test] [-] [user=-]" in line
        assert line.endswith("classmate_hub.test: hello")

    def test_inside_a_request(self):
        token = _request_context.set(RequestContext(request_id="req-9"))
        try:
            bind_user(42)
            assert get_request_id() == "req-9"
            line = StructuredFormatter(env="prod").format(make_record())
        finally:
            _request_context.reset(token)

        assert "[prod] [req-9] [user=42]" in line
        assert get_request_id() is None


def test_bind_user_without_request_is_ignored():
    bind_user(7)
    assert get_request_id() is None


def test_signed_in_request_keeps_request_id(client, make_user, auth_headers):
    user = make_user()
    response = client.get("/api/auth/session", headers={**auth_headers(user), "X-Request-ID": "trace-1"})
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "trace-1"
