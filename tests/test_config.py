"""Tests for the process-wide configuration and the size guard."""

import httpx
import pytest

from vc_graph.config import (
    DEFAULT_MAX_JSON_SIZE,
    check_payload_size,
    check_response_size,
    get_max_json_size,
    set_max_json_size,
)
from vc_graph.exceptions import ConfigurationError, UnsafeResponseError


class TestMaxJsonSize:
    """Tests for the maximum JSON size setting."""

    def test_default(self):
        """The default limit is 10 MiB."""
        assert get_max_json_size() == DEFAULT_MAX_JSON_SIZE == 10 * 1024 * 1024

    def test_set_positive_integer(self):
        """A positive integer is accepted."""
        set_max_json_size(1024)
        assert get_max_json_size() == 1024

    def test_set_unlimited(self):
        """None disables the limit."""
        set_max_json_size(None)
        assert get_max_json_size() is None

    @pytest.mark.parametrize("size", [0, -1, 1.5, "100", True])
    def test_rejects_invalid_values(self, size):
        """Non-integers and non-positive values are rejected at set-time."""
        with pytest.raises(ConfigurationError, match="positive integer"):
            set_max_json_size(size)
        assert get_max_json_size() == DEFAULT_MAX_JSON_SIZE

    def test_configuration_error_is_value_error(self):
        """ConfigurationError can be caught as a ValueError."""
        with pytest.raises(ValueError):
            set_max_json_size(-5)


class TestCheckResponseSize:
    """Tests for the Content-Length size guard."""

    def test_within_limit(self):
        """A declared length under the limit passes."""
        set_max_json_size(100)
        check_response_size(httpx.Response(200, headers={"Content-Length": "100"}))

    def test_over_limit(self):
        """A declared length over the limit is rejected with both sizes."""
        set_max_json_size(100)
        response = httpx.Response(200, headers={"Content-Length": "101"})

        with pytest.raises(UnsafeResponseError) as exc_info:
            check_response_size(response)

        message = str(exc_info.value)
        assert "not safe to parse" in message
        assert "Max size=[100]" in message
        assert "actual=[101]" in message
        assert exc_info.value.max_size == 100
        assert exc_info.value.actual == "101"

    def test_missing_length_is_unsafe(self):
        """Without a declared length the body is not considered safe."""
        set_max_json_size(100)
        with pytest.raises(UnsafeResponseError, match=r"actual=\[None\]"):
            check_response_size(httpx.Response(200))

    def test_invalid_length_is_unsafe(self):
        """A non-numeric Content-Length is not considered safe."""
        set_max_json_size(100)
        response = httpx.Response(200, headers={"Content-Length": "lots"})
        with pytest.raises(UnsafeResponseError):
            check_response_size(response)

    def test_unlimited_skips_check(self):
        """With the limit disabled, any declared length passes."""
        set_max_json_size(None)
        check_response_size(httpx.Response(200, headers={"Content-Length": "999999999999"}))
        check_response_size(httpx.Response(200))


class TestCheckPayloadSize:
    """Tests for the buffered payload guard."""

    def test_over_limit(self):
        """A buffered payload over the limit is rejected."""
        set_max_json_size(10)
        with pytest.raises(UnsafeResponseError, match=r"Max size=\[10\], actual=\[11\]"):
            check_payload_size(11)

    def test_unlimited(self):
        """With the limit disabled, any payload passes."""
        set_max_json_size(None)
        check_payload_size(10**12)
