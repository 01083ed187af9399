# connector_sync/services/deduplicator.py
"""Turns per-topic connector counts into one count per device."""

from typing import Iterable, Mapping
from connector_sync.exceptions import MalformedTopicError
from connector_sync.services.topic_parser import extract_device_id
from connector_sync.utils.logger import get_logger

logger = get_logger(__name__)


def to_device_pairs(topic_counts: Mapping[str, int]) -> list[tuple[str, int]]:
    """Map collector output (topic -> count) to (device_id, count) pairs."""
    pairs = []
    for topic, count in topic_counts.items():
        try:
            pairs.append((extract_device_id(topic), count))
        except MalformedTopicError as e:
            logger.warning(f"Skipping {e}")
    return pairs


def deduplicate_pairs(pairs: Iterable[tuple[str, int]]) -> list[tuple[str, int]]:
    """
    One entry per device, keeping the highest count reported.
    A device can publish under several prefixes; the largest report wins so
    that a stale retained message never hides a connector.
    """
    device_counts: dict[str, int] = {}
    for device_id, connector_count in pairs:
        if device_id not in device_counts or connector_count > device_counts[device_id]:
            device_counts[device_id] = connector_count
    return list(device_counts.items())
