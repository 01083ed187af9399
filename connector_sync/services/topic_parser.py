# connector_sync/services/topic_parser.py
"""
Parses connectors-count telemetry.
Topic layout: <prefix>/sweet-home/<deviceId>/status-control/connectors-count
Payload: UTF-8 decimal integer, e.g. b"2"
"""

from typing import Optional, Union
from connector_sync.config import settings
from connector_sync.exceptions import MalformedPayloadError, MalformedTopicError

DEVICE_SEGMENT = 2   # zero-based index of <deviceId> in the topic


def extract_device_id(topic: str) -> str:
    """Return the device id (third segment) of a telemetry topic."""
    parts = topic.split("/")
    if len(parts) <= DEVICE_SEGMENT or not parts[DEVICE_SEGMENT]:
        raise MalformedTopicError(topic)
    return parts[DEVICE_SEGMENT]


def parse_connector_count(payload: Union[bytes, str], topic: str = "",
                          max_count: Optional[int] = None) -> int:
    """Decode a connectors-count payload into an int between 0 and max_count (MAX_CONNECTORS)."""
    if max_count is None:
        max_count = settings.MAX_CONNECTORS
    if isinstance(payload, bytes):
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError:
            raise MalformedPayloadError(payload, topic) from None
    else:
        text = payload

    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        raise MalformedPayloadError(payload, topic)
    count = int(text)
    if count > max_count:
        raise MalformedPayloadError(payload, topic)
    return count
