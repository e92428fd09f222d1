"""Tests for time_server module."""

from datetime import datetime
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from timeguard.time_server import ResponseParseError, TimeServerError, parse_server_date

from .conftest import TIME_URL


class TestParseServerDate:
    """Tests for the strict date parser."""

    def test_parse_pm(self):
        assert parse_server_date("2024-01-15 02:30:05 PM") == datetime(2024, 1, 15, 14, 30, 5)

    def test_parse_midnight(self):
        """Test 12 AM maps to hour zero."""
        assert parse_server_date("2024-01-15 12:00:00 AM") == datetime(2024, 1, 15, 0, 0, 0)

    @pytest.mark.parametrize("text", [
        "2024-01-15 14:30:05",        # 24-hour clock
        "2024-01-15 2:30:05 PM",      # unpadded hour
        "2024-01-15T02:30:05 PM",
        "2024-01-15 02:30:05 pm",
        " 2024-01-15 02:30:05 PM",
        "2024-01-15 13:30:05 PM",     # hour out of range for 12-hour clock
        "2024-02-30 02:30:05 PM",     # no such day
        "",
    ])
    def test_rejects_off_format(self, text):
        """Test that anything off the wire format is rejected."""
        with pytest.raises(ResponseParseError):
            parse_server_date(text)


class TestTimeServerClient:
    """Tests for TimeServerClient class."""

    def test_fetch_date(self, server, requests_mock):
        """Test a successful fetch sends the time zone and parses the date."""
        requests_mock.get(TIME_URL, json={"date": "2024-01-15 10:01:00 AM"})

        assert server.fetch_date("Europe/Amsterdam") == datetime(2024, 1, 15, 10, 1, 0)

        query = parse_qs(urlparse(requests_mock.last_request.url).query)
        assert query["timezone"] == ["Europe/Amsterdam"]

    def test_transport_error(self, server, requests_mock):
        requests_mock.get(TIME_URL, exc=requests.exceptions.ConnectionError)

        with pytest.raises(TimeServerError):
            server.fetch_date("UTC")

    @pytest.mark.parametrize("status", [199, 301, 404, 500, 503])
    def test_non_2xx_status(self, server, requests_mock, status):
        """Test that statuses outside 200-299 are server errors."""
        requests_mock.get(TIME_URL, status_code=status, json={"date": "2024-01-15 10:01:00 AM"})

        with pytest.raises(TimeServerError):
            server.fetch_date("UTC")

    def test_2xx_status_accepted(self, server, requests_mock):
        requests_mock.get(TIME_URL, status_code=203, json={"date": "2024-01-15 10:01:00 AM"})
        assert server.fetch_date("UTC").minute == 1

    def test_empty_body(self, server, requests_mock):
        requests_mock.get(TIME_URL, content=b"")

        with pytest.raises(ResponseParseError):
            server.fetch_date("UTC")

    @pytest.mark.parametrize("body", [
        "not json",
        "[\"2024-01-15 10:01:00 AM\"]",
        "{\"time\": \"2024-01-15 10:01:00 AM\"}",
        "{\"date\": 1705312860}",
        "{\"date\": \"15/01/2024 10:01\"}",
    ])
    def test_unusable_body(self, server, requests_mock, body):
        """Test malformed bodies raise ResponseParseError."""
        requests_mock.get(TIME_URL, text=body)

        with pytest.raises(ResponseParseError):
            server.fetch_date("UTC")
