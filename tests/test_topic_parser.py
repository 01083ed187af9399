# tests/test_topic_parser.py
"""Unit tests for topic/payload parsing."""

from unittest.mock import patch

import pytest
from connector_sync.exceptions import MalformedPayloadError, MalformedTopicError
from connector_sync.services.topic_parser import extract_device_id, parse_connector_count


class TestExtractDeviceId:
    def test_third_segment_is_device(self):
        assert extract_device_id("A/scope/DEV123/status/connectors-count") == "DEV123"

    def test_real_topic_layout(self):
        topic = "eu-cloud/sweet-home/AB-12-34/status-control/connectors-count"
        assert extract_device_id(topic) == "AB-12-34"

    def test_exactly_three_segments(self):
        assert extract_device_id("a/b/c") == "c"

    @pytest.mark.parametrize("topic", ["", "A", "A/scope", "A/scope/"])
    def test_missing_device_segment(self, topic):
        with pytest.raises(MalformedTopicError):
            extract_device_id(topic)


class TestParseConnectorCount:
    def test_bytes_payload(self):
        assert parse_connector_count(b"2") == 2

    def test_surrounding_whitespace_ignored(self):
        assert parse_connector_count(b" 4\n") == 4

    def test_str_payload(self):
        assert parse_connector_count("0") == 0

    @pytest.mark.parametrize("payload", [b"", b"abc", b"-1", b"2.5", b"\xff\xfe", "²"])
    def test_malformed_payload(self, payload):
        with pytest.raises(MalformedPayloadError) as exc:
            parse_connector_count(payload, "p/sweet-home/X1/status-control/connectors-count")
        assert "X1" in str(exc.value)

    def test_count_above_max_connectors_rejected(self):
        with pytest.raises(MalformedPayloadError):
            parse_connector_count(b"100000000")
        with pytest.raises(MalformedPayloadError):
            parse_connector_count(b"5", max_count=4)

    def test_max_connectors_is_inclusive(self):
        assert parse_connector_count(b"4", max_count=4) == 4
        with patch("connector_sync.services.topic_parser.settings.MAX_CONNECTORS", 8):
            assert parse_connector_count(b"8") == 8
