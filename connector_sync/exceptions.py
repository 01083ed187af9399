# connector_sync/exceptions.py
"""
Exception hierarchy for the reconciliation pipeline.

Transport and storage faults are run-fatal. Data errors are raised per
message and skipped by the collector.
"""


class SyncError(Exception):
    """Base exception for all connector_sync errors."""


class TransportError(SyncError):
    """MQTT broker unreachable, refused the connection, or dropped it mid-collection."""


class DataError(SyncError):
    """A single telemetry message could not be interpreted."""


class MalformedTopicError(DataError):
    """Topic has no device segment."""

    def __init__(self, topic: str):
        self.topic = topic
        super().__init__(f"Malformed topic (no device segment): {topic!r}")


class MalformedPayloadError(DataError):
    """Payload is not a non-negative decimal integer."""

    def __init__(self, payload, topic: str = ""):
        self.payload = payload
        self.topic = topic
        super().__init__(f"Malformed connectors-count payload {payload!r} on {topic or '?'}")


class StorageError(SyncError):
    """Database failure during reconciliation. The run's transaction was rolled back."""
