"""
Tests for metrics middleware, rate limiter and Sentry helpers.
"""

from unittest.mock import MagicMock, patch

from ml.audit.audit_engine import audit_bill

from app.core.rate_limiter import get_real_client_ip, rate_limit_exceeded_handler
from app.core.sentry import (
    before_send_handler,
    before_send_transaction_handler,
    capture_learning_failure,
    init_sentry,
)
from app.middleware.metrics_middleware import MetricsMiddleware


class TestMetricsMiddleware:

    def _request(self, route=None, headers=None) -> MagicMock:
        request = MagicMock()
        request.scope = {"route": route} if route else {}
        request.headers = headers or {}
        return request

    def test_route_template(self):
        route = MagicMock()
        route.path = "/api/history"

        assert MetricsMiddleware._route_label(self._request(route)) == "/api/history"

    def test_unmatched_route(self):
        assert MetricsMiddleware._route_label(self._request()) == "unmatched"

    def test_multipart_upload_size(self):
        request = self._request(headers={
            "content-type": "multipart/form-data; boundary=x",
            "content-length": "2048",
        })

        assert MetricsMiddleware._upload_size(request) == 2048

    def test_json_body_not_counted_as_upload(self):
        request = self._request(headers={"content-type": "application/json", "content-length": "90"})

        assert MetricsMiddleware._upload_size(request) is None


class TestClientIp:

    def _request(self, headers: dict, host: str = "10.0.0.1") -> MagicMock:
        request = MagicMock()
        request.headers = headers
        request.client.host = host
        return request

    def test_forwarded_for(self):
        request = self._request({"X-Forwarded-For": "203.0.113.5, 10.0.0.2"})

        assert get_real_client_ip(request) == "203.0.113.5"

    def test_real_ip(self):
        assert get_real_client_ip(self._request({"X-Real-IP": " 203.0.113.9 "})) == "203.0.113.9"

    def test_remote_address(self):
        assert get_real_client_ip(self._request({})) == "10.0.0.1"


class TestSentry:

    def test_disabled_without_dsn(self, monkeypatch):
        monkeypatch.delenv("SENTRY_DSN", raising=False)

        assert init_sentry(dsn=None) is False

    def test_drops_disconnects(self):
        hint = {"exc_info": (ConnectionResetError, ConnectionResetError(), None)}

        assert before_send_handler({}, hint) is None

    def test_scrubs_headers(self):
        event = {"request": {"headers": {"authorization": "Bearer x", "accept": "*/*"}}}

        result = before_send_handler(event, {})

        assert result["request"]["headers"]["authorization"] == "[Filtered]"
        assert result["request"]["headers"]["accept"] == "*/*"

    def test_drops_health_transactions(self):
        assert before_send_transaction_handler({"transaction": "/health"}, {}) is None
        assert before_send_transaction_handler({"transaction": "/api/analyze"}, {}) is not None

    def test_scrubs_patient_details(self):
        event = {
            "request": {"data": {"patient_name": "Priya Nair", "line_items": [{"service": "MRI"}]}},
            "extra": {"bill": {"patientName": "Priya Nair", "city": "Pune"}},
        }

        result = before_send_handler(event, {})

        assert result["request"]["data"]["patient_name"] == "[Filtered]"
        assert result["request"]["data"]["line_items"] == [{"service": "MRI"}]
        assert result["extra"]["bill"] == {"patientName": "[Filtered]", "city": "Pune"}

    def test_learning_failure_context_has_no_patient(self):
        result = audit_bill({
            "hospital_name": "City Care",
            "patient_name": "Priya Nair",
            "city": "Pune",
            "line_items": [{"service": "MRI Scan", "price": 9000}],
        }, {})
        scope = MagicMock()

        with patch("app.core.sentry.sentry_sdk") as mock_sdk:
            mock_sdk.new_scope.return_value.__enter__.return_value = scope
            mock_sdk.capture_exception.return_value = "evt-1"

            assert capture_learning_failure(KeyError("boom"), result) == "evt-1"

        scope.set_tag.assert_any_call("component", "learning_loop")
        context = scope.set_context.call_args.args[1]
        assert context["city"] == "Pune"
        assert "Priya Nair" not in context.values()


class TestRateLimitHandler:

    def test_error_shape_and_retry_after(self):
        request = MagicMock()
        request.url.path = "/api/analyze"
        exc = MagicMock()
        exc.detail = "10 per 1 minute"
        exc.retry_after = 30

        response = rate_limit_exceeded_handler(request, exc)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "30"
        assert b"Too many requests" in response.body
        assert b"/api/analyze" in response.body
