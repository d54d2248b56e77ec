"""Unit tests for ApiResponse and RateSignal."""

import pytest

from wikiflow.core import LoadLevel, ProtocolError
from wikiflow.models import ApiResponse, RateSignal


class TestRateSignal:
    def test_no_headers(self):
        signal = RateSignal.from_headers(None)
        assert signal.level is LoadLevel.NORMAL
        assert not signal.throttled
        assert signal.retry_after is None

    def test_retry_after_and_lag(self):
        signal = RateSignal.from_headers({"Retry-After": "5", "X-Database-Lag": "3"})
        assert signal.throttled
        assert signal.retry_after == 5.0
        assert signal.lag == 3.0

    def test_lag_alone_is_not_throttled(self):
        signal = RateSignal.from_headers({"X-Database-Lag": "1.5"})
        assert not signal.throttled
        assert signal.lag == 1.5

    def test_http_date_retry_after_ignored(self):
        signal = RateSignal.from_headers({"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})
        assert signal.retry_after is None
        assert not signal.throttled


class TestApiResponse:
    def test_continuation_values_become_strings(self):
        response = ApiResponse.from_payload(
            {"continue": {"sroffset": 10, "continue": "-||"}, "query": {"search": []}}
        )
        assert response.continuation == {"sroffset": "10", "continue": "-||"}
        assert response.query == {"search": []}
        assert response.error is None

    def test_no_continue_block(self):
        response = ApiResponse.from_payload({"batchcomplete": True})
        assert response.continuation is None
        assert response.query == {}

    def test_malformed_continue_rejected(self):
        with pytest.raises(ProtocolError):
            ApiResponse.from_payload({"continue": "-||"})

    def test_non_object_rejected(self):
        with pytest.raises(ProtocolError):
            ApiResponse.from_payload(["not", "an", "object"])

    def test_error_block(self):
        response = ApiResponse.from_payload(
            {"error": {"code": "maxlag", "info": "Waiting for a database server: 3 seconds lagged."}}
        )
        assert response.error_code == "maxlag"
        assert response.error_info.startswith("Waiting")

    def test_errors_list(self):
        """errorformat=plaintext answers with a list of errors."""
        response = ApiResponse.from_payload(
            {"errors": [{"code": "badtoken", "text": "Invalid CSRF token.", "module": "main"}]}
        )
        assert response.error_code == "badtoken"
        assert response.error_info == "Invalid CSRF token."

    def test_warnings_formatversion_2(self):
        response = ApiResponse.from_payload(
            {
                "warnings": {
                    "main": {"warnings": "Unrecognized parameter: foo."},
                    "query": {"warnings": "Unrecognized value for parameter \"list\": bar."},
                }
            }
        )
        assert response.warnings == (
            "main: Unrecognized parameter: foo.",
            "query: Unrecognized value for parameter \"list\": bar.",
        )

    def test_warnings_list_form(self):
        response = ApiResponse.from_payload(
            {"warnings": [{"code": "unrecognizedparams", "text": "Unrecognized parameter: foo."}]}
        )
        assert response.warnings == ("Unrecognized parameter: foo.",)

    def test_headers_feed_rate_signal(self):
        response = ApiResponse.from_payload({}, {"Retry-After": "2"})
        assert response.rate.retry_after == 2.0

    def test_frozen(self):
        response = ApiResponse.from_payload({})
        with pytest.raises(Exception):
            response.body = {"x": 1}
