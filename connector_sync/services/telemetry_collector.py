# connector_sync/services/telemetry_collector.py
"""
Time-boxed MQTT collector for connectors-count telemetry.

Connects to the cloud broker, subscribes to
    +/sweet-home/+/status-control/connectors-count   (QoS 1)
and records the latest count seen per topic until the collection window
closes. Stations publish these as retained messages, so a fresh subscription
receives the current value of every station almost immediately.

paho runs its network loop on its own thread. Callbacks only hand messages
over to the asyncio loop; the consumer task is the single owner of the
topic -> count map.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Optional
from urllib.parse import unquote, urlsplit

import paho.mqtt.client as mqtt

from connector_sync.config import settings
from connector_sync.exceptions import DataError, TransportError
from connector_sync.services.topic_parser import extract_device_id, parse_connector_count
from connector_sync.utils.logger import get_logger

logger = get_logger(__name__)

_DEFAULT_PORTS = {"mqtt": 1883, "tcp": 1883, "mqtts": 8883, "ssl": 8883, "ws": 80, "wss": 443}
_TLS_SCHEMES = {"mqtts", "ssl", "wss"}
_WS_SCHEMES = {"ws", "wss"}


@dataclass(frozen=True)
class BrokerAddress:
    host: str
    port: int
    transport: str = "tcp"    # tcp | websockets
    tls: bool = False
    path: str = ""            # websocket path
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    def __str__(self):
        return f"{self.host}:{self.port}"


def parse_broker_url(url: str) -> BrokerAddress:
    """
    Parse mqtt://, mqtts://, ssl://, ws://, wss:// or bare host[:port].
    Credentials given as user:pass@host are percent-decoded and kept.
    """
    value = (url or "").strip()
    if not value:
        raise ValueError("Broker URL is empty")
    if "://" not in value:
        value = f"mqtt://{value}"

    parts = urlsplit(value)
    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS:
        raise ValueError(f"Unsupported broker scheme: {scheme!r}")
    if not parts.hostname:
        raise ValueError(f"Broker URL has no host: {url!r}")

    return BrokerAddress(
        host=parts.hostname,
        port=parts.port or _DEFAULT_PORTS[scheme],
        transport="websockets" if scheme in _WS_SCHEMES else "tcp",
        tls=scheme in _TLS_SCHEMES,
        path=parts.path if scheme in _WS_SCHEMES else "",
        username=unquote(parts.username) if parts.username is not None else None,
        password=unquote(parts.password) if parts.password is not None else None,
    )


def _first_set(*values):
    return next((v for v in values if v is not None), None)


class TelemetryCollector:
    """Collects connector counts from MQTT for a fixed window, then disconnects."""

    def __init__(
        self,
        broker_url: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        topic: Optional[str] = None,
        qos: int = 1,
        client_id: Optional[str] = None,
        keepalive: Optional[int] = None,
        client_factory: Optional[Callable[[], mqtt.Client]] = None,
    ):
        self.broker = parse_broker_url(broker_url or settings.MQTT_BROKER_URL)
        # explicit argument, then user:pass@ in the URL, then settings
        self.username = _first_set(username, self.broker.username, settings.MQTT_USERNAME)
        self.password = _first_set(password, self.broker.password, settings.MQTT_PASSWORD)
        self.topic = topic or settings.MQTT_TOPIC
        self.qos = qos
        self.client_id = client_id if client_id is not None else settings.MQTT_CLIENT_ID
        self.keepalive = keepalive or settings.MQTT_KEEPALIVE
        self._client_factory = client_factory or self._build_client
        self._closing = False
        self.devices_connector_count: dict[str, int] = {}

    def _build_client(self) -> mqtt.Client:
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id or "",
            transport=self.broker.transport,
        )
        client.enable_logger(logger)
        if self.broker.transport == "websockets":
            client.ws_set_options(path=self.broker.path or "/mqtt")
        if self.broker.tls:
            client.tls_set()
        if self.username:
            client.username_pw_set(self.username, self.password)
        return client

    async def collect(self, duration: Optional[float] = None) -> dict[str, int]:
        """
        Listen for `duration` seconds and return {topic: latest count}.
        Raises TransportError if the broker can't be reached, refuses the
        connection or the subscription, or drops it before the window closes.
        """
        duration = settings.COLLECTOR_DURATION if duration is None else duration
        loop = asyncio.get_running_loop()
        inbox: asyncio.Queue = asyncio.Queue()
        failure: asyncio.Future = loop.create_future()
        self.devices_connector_count = {}
        self._closing = False

        def fail(message: str):
            if not failure.done() and not self._closing:
                failure.set_exception(TransportError(message))

        def on_connect(client, _userdata, _flags, reason_code, _properties):
            if reason_code.is_failure:
                loop.call_soon_threadsafe(fail, f"MQTT broker refused connection: {reason_code}")
                return
            logger.info(f"Connected to MQTT broker {self.broker.host}:{self.broker.port}")
            client.subscribe(self.topic, qos=self.qos)

        def on_subscribe(_client, _userdata, _mid, reason_code_list, _properties):
            refused = [rc for rc in reason_code_list if rc.is_failure]
            if refused:
                loop.call_soon_threadsafe(fail, f"MQTT broker refused subscription to {self.topic}: {refused[0]}")
                return
            logger.info(f"Subscribed to {self.topic} (qos={self.qos})")

        def on_message(_client, _userdata, msg):
            loop.call_soon_threadsafe(inbox.put_nowait, (msg.topic, msg.payload))

        def on_disconnect(_client, _userdata, _flags, reason_code, _properties):
            if not self._closing:
                loop.call_soon_threadsafe(fail, f"Lost MQTT connection during collection: {reason_code}")

        client = self._client_factory()
        client.on_connect = on_connect
        client.on_subscribe = on_subscribe
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        try:
            client.connect(self.broker.host, self.broker.port, keepalive=self.keepalive)
        except (OSError, ValueError) as e:
            raise TransportError(f"Cannot reach MQTT broker {self.broker.host}:{self.broker.port}: {e}") from e
        client.loop_start()

        logger.info(f"Collecting connector counts for {duration}s...")
        consumer = asyncio.create_task(self._consume(inbox), name="telemetry-consumer")
        try:
            done, _ = await asyncio.wait({consumer, failure}, timeout=duration,
                                         return_when=asyncio.FIRST_COMPLETED)
            for finished in done:
                finished.result()
        finally:
            await self._stop(client, consumer, inbox, failure)

        logger.info(f"Collection completed! {len(self.devices_connector_count)} topics reported")
        return dict(self.devices_connector_count)

    async def _consume(self, inbox: asyncio.Queue):
        while True:
            topic, payload = await inbox.get()
            self._handle_message(topic, payload)

    def _handle_message(self, topic: str, payload):
        try:
            extract_device_id(topic)
            count = parse_connector_count(payload, topic)
        except DataError as e:
            logger.warning(f"Skipping message: {e}")
            return
        logger.debug(f"{topic} → {count}")
        self.devices_connector_count[topic] = count

    async def _stop(self, client, consumer: asyncio.Task, inbox: asyncio.Queue, failure: asyncio.Future):
        """Detach the handler, apply what already arrived, and close the connection."""
        self._closing = True
        if not failure.done():
            failure.cancel()
        elif not failure.cancelled():
            # a drop right after the window closed doesn't invalidate the counts
            failure.exception()
        client.on_message = None
        consumer.cancel()
        try:
            # wait() rather than await: a cancel aimed at collect() must propagate
            await asyncio.wait({consumer})
            if not consumer.cancelled():
                consumer.result()
            while not inbox.empty():
                self._handle_message(*inbox.get_nowait())
        finally:
            try:
                client.unsubscribe(self.topic)
                client.disconnect()
            finally:
                client.loop_stop()
            logger.info("Disconnected from broker")
