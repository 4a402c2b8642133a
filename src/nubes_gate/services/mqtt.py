"""Process-wide MQTT connection.

The connection is established once at startup and managed by paho's network
loop thread, which also re-establishes it with a bounded reconnect delay.
Callers only ever ask whether it is currently connected; nothing here blocks
a request waiting for the broker.
"""

from __future__ import annotations

import logging
import secrets
from enum import Enum
from threading import Lock
from typing import Any

import paho.mqtt.client as mqtt

from nubes_gate.core.settings import settings

logger = logging.getLogger(__name__)

# Outgoing states counted against paho's in-flight window.
_INFLIGHT_STATES = frozenset(
    {
        mqtt.mqtt_ms_wait_for_puback,
        mqtt.mqtt_ms_wait_for_pubrec,
        mqtt.mqtt_ms_wait_for_pubcomp,
    }
)


class ConnectionState(Enum):
    """Connection states reported by the transport."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class MqttTransport:
    """Background-managed paho-mqtt client."""

    def __init__(
        self,
        host: str | None,
        port: int = 1883,
        *,
        username: str | None = None,
        password: str | None = None,
        client_id_prefix: str = "lasnubes_",
        keepalive: int = 60,
        connect_timeout: float = 4.0,
        reconnect_min_delay: int = 1,
        reconnect_max_delay: int = 30,
    ) -> None:
        self.host = host
        self.port = port
        self.client_id = f"{client_id_prefix}{secrets.token_hex(4)}"
        self._keepalive = keepalive
        self._state = ConnectionState.IDLE
        self._state_lock = Lock()
        self._started = False

        self._client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            clean_session=True,
        )
        if username:
            self._client.username_pw_set(username, password)
        self._client.connect_timeout = connect_timeout
        self._client.reconnect_delay_set(
            min_delay=max(1, reconnect_min_delay),
            max_delay=max(reconnect_min_delay, reconnect_max_delay),
        )
        self._client.on_connect = self._on_connect
        self._client.on_connect_fail = self._on_connect_fail
        self._client.on_disconnect = self._on_disconnect

    @property
    def state(self) -> ConnectionState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: ConnectionState) -> None:
        with self._state_lock:
            self._state = state

    def _on_connect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any,
    ) -> None:
        if getattr(reason_code, "is_failure", False):
            self._set_state(ConnectionState.ERROR)
            logger.error("MQTT connection error: %s", reason_code)
            return
        self._set_state(ConnectionState.CONNECTED)
        logger.info("Connected to MQTT broker %s:%s", self.host, self.port)

    def _on_connect_fail(self, client: mqtt.Client, userdata: Any) -> None:
        self._set_state(ConnectionState.ERROR)
        logger.error("MQTT connection error: unable to reach %s:%s", self.host, self.port)

    def _on_disconnect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any,
    ) -> None:
        self._set_state(ConnectionState.DISCONNECTED)
        logger.warning("MQTT connection closed: %s", reason_code)

    def start(self) -> None:
        """Begin connecting in the background."""
        if self._started:
            return
        if not self.host:
            logger.warning("MQTT broker not configured; gate commands are unavailable")
            return

        self._set_state(ConnectionState.CONNECTING)
        self._client.connect_async(self.host, self.port, keepalive=self._keepalive)
        self._client.loop_start()
        self._started = True
        logger.info("MQTT broker: %s:%s (client id %s)", self.host, self.port, self.client_id)

    def stop(self) -> None:
        """Disconnect and stop the network loop."""
        if not self._started:
            return
        self._client.disconnect()
        self._client.loop_stop()
        self._started = False
        self._set_state(ConnectionState.IDLE)

    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED and self._client.is_connected()

    def publish(self, topic: str, payload: str | bytes, qos: int = 1) -> mqtt.MQTTMessageInfo:
        return self._client.publish(topic, payload, qos=qos)

    def discard(self, mid: int) -> bool:
        """Drop an unacknowledged outgoing message so paho never resends it.

        Returns True if the message was still queued.
        """
        client = self._client
        with client._out_message_mutex:
            message = client._out_messages.pop(mid, None)
            if message is not None and message.state in _INFLIGHT_STATES:
                client._inflight_messages = max(0, client._inflight_messages - 1)

        if message is None:
            return False
        logger.warning("Discarded unacknowledged message %s to %s", mid, message.topic)
        return True


class _MqttTransportSingleton:
    _instance: MqttTransport | None = None

    @classmethod
    def get_instance(cls) -> MqttTransport:
        if cls._instance is None:
            cls._instance = MqttTransport(
                settings.mqtt_broker,
                settings.mqtt_port,
                username=settings.mqtt_username,
                password=settings.mqtt_password,
                client_id_prefix=settings.mqtt_client_id_prefix,
                keepalive=settings.mqtt_keepalive_seconds,
                connect_timeout=settings.mqtt_connect_timeout_seconds,
                reconnect_min_delay=settings.mqtt_reconnect_min_seconds,
                reconnect_max_delay=settings.mqtt_reconnect_max_seconds,
            )
        return cls._instance


def get_mqtt_transport() -> MqttTransport:
    """Return the process-wide MQTT transport."""
    return _MqttTransportSingleton.get_instance()
