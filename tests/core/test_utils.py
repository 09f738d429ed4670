"""
Unit tests for inkwell.core.utils.
"""

import pytest

from inkwell.core.utils import (
    format_wait_time,
    get_client_ip,
    get_device_info,
    is_mobile_user_agent,
    mask_code,
    normalize_email,
    now_ms,
)


class TestNowMs:
    def test_uses_injected_clock(self):
        assert now_ms(lambda: 12.3456) == 12345


class TestMaskCode:
    @pytest.mark.parametrize(
        "code, expected",
        [("ABC123", "A****3"), ("12", "12"), ("", ""), ("XYZ", "X*Z")],
    )
    def test_mask_code(self, code, expected):
        assert mask_code(code) == expected


class TestFormatWaitTime:
    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (42, "42 seconds"),
            (0.2, "1 seconds"),
            (60, "1 minutes"),
            (90, "2 minutes"),
            (3600, "1 hours"),
            (3900, "1 hours 5 minutes"),
        ],
    )
    def test_format_wait_time(self, seconds, expected):
        assert format_wait_time(seconds) == expected


class TestNormalizeEmail:
    def test_strips_and_lowercases(self):
        assert normalize_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"


class TestGetClientIp:
    def test_prefers_cloudflare_header(self):
        headers = {"cf-connecting-ip": "1.1.1.1", "x-forwarded-for": "2.2.2.2"}
        assert get_client_ip(headers, "3.3.3.3") == "1.1.1.1"

    def test_uses_first_forwarded_address(self):
        headers = {"x-forwarded-for": "2.2.2.2, 10.0.0.1"}
        assert get_client_ip(headers, "3.3.3.3") == "2.2.2.2"

    def test_falls_back_to_peer_then_loopback(self):
        assert get_client_ip({}, "3.3.3.3") == "3.3.3.3"
        assert get_client_ip({}) == "127.0.0.1"


class TestDeviceInfo:
    def test_windows_chrome(self):
        ua = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0"
        assert get_device_info(ua) == "Windows / Chrome"

    def test_iphone_safari(self):
        ua = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile Safari/604.1"
        assert get_device_info(ua) == "iOS / Safari"
        assert is_mobile_user_agent(ua) is True

    def test_edge_is_not_reported_as_chrome(self):
        ua = "Mozilla/5.0 (Windows NT 10.0) Chrome/120.0 Safari/537.36 Edg/120.0"
        assert get_device_info(ua) == "Windows / Edge"

    def test_unknown_agent_is_truncated(self):
        assert get_device_info("x" * 150) == "x" * 100

    def test_empty_agent(self):
        assert get_device_info(None) is None
        assert get_device_info("Unknown") is None
        assert is_mobile_user_agent(None) is False
