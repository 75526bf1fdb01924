"""Tests for display formatting helpers."""

from datetime import datetime

from urgent_care_intake.client import client_info_from_request, client_ip_from_headers
from urgent_care_intake.display_helpers import format_date_display, mask_ssn, time_since_visit

NOW = datetime(2024, 6, 1, 9, 0, 0)


class TestMaskSsn:
    def test_masks_all_but_last_four(self):
        assert mask_ssn("123-45-6789") == "XXX-XX-6789"
        assert mask_ssn("123456789") == "XXX-XX-6789"

    def test_short_or_empty(self):
        assert mask_ssn("12") == "XXX-XX-XXXX"
        assert mask_ssn(None) == ""


class TestFormatDateDisplay:
    def test_default_format(self):
        assert format_date_display("1985-05-05") == "May 5, 1985"

    def test_custom_format(self):
        assert format_date_display("1985-05-05", "%m/%d/%Y") == "05/05/1985"

    def test_unparseable_returned_as_is(self):
        assert format_date_display("sometime") == "sometime"
        assert format_date_display(None) == ""


class TestTimeSinceVisit:
    def test_just_now(self):
        assert time_since_visit(datetime(2024, 6, 1, 8, 59, 30), now=NOW) == "Just now"

    def test_singular_and_plural(self):
        assert time_since_visit(datetime(2024, 6, 1, 8, 0, 0), now=NOW) == "1 hour ago"
        assert time_since_visit(datetime(2024, 5, 11, 9, 0, 0), now=NOW) == "3 weeks ago"

    def test_accepts_stored_timestamp(self):
        assert time_since_visit("2023-06-01 09:00:00.000000", now=NOW) == "1 year ago"

    def test_unknown(self):
        assert time_since_visit(None) == "Unknown"
        assert time_since_visit("garbage") == "Unknown"


class TestClientIp:
    """Tests for resolving the client address behind proxies."""

    def test_client_ip_header_first(self):
        headers = {"Client-IP": "10.0.0.5", "X-Forwarded-For": "10.0.0.6"}
        assert client_ip_from_headers(headers, "127.0.0.1") == "10.0.0.5"

    def test_first_forwarded_address(self):
        headers = {"X-Forwarded-For": "10.0.0.6, 172.16.0.1"}
        assert client_ip_from_headers(headers, "127.0.0.1") == "10.0.0.6"

    def test_falls_back_to_remote_addr(self):
        assert client_ip_from_headers({}, "127.0.0.1") == "127.0.0.1"
        assert client_ip_from_headers({}) == "0.0.0.0"

    def test_client_info_from_request(self):
        info = client_info_from_request({"user-agent": "Kiosk/1.0"}, "10.0.0.9", session_id="s-1")
        assert info.ip_address == "10.0.0.9"
        assert info.user_agent == "Kiosk/1.0"
        assert info.session_id == "s-1"
