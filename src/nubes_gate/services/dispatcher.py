"""Acknowledged publication of device commands."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, NoReturn, Protocol

import paho.mqtt.client as mqtt

from nubes_gate.core.errors import PublishFailed, TransportUnavailable
from nubes_gate.core.settings import settings
from nubes_gate.services.mqtt import get_mqtt_transport

logger = logging.getLogger(__name__)

QOS_ACKNOWLEDGED = 1


class CommandTransport(Protocol):
    """The subset of the MQTT transport used for dispatch."""

    def is_connected(self) -> bool: ...

    def publish(self, topic: str, payload: str | bytes, qos: int = ...) -> Any: ...

    def discard(self, mid: int) -> bool: ...


@dataclass(frozen=True)
class DeliveryResult:
    """Broker acknowledgement for a published command.

    This confirms the broker accepted the message, not that the device acted.
    """

    channel: str
    payload: str
    qos: int = QOS_ACKNOWLEDGED
    message_id: int | None = None


class CommandDispatcher:
    """Publish commands over the current transport session."""

    def __init__(self, transport: CommandTransport, *, publish_timeout: float = 5.0) -> None:
        self._transport = transport
        self._publish_timeout = publish_timeout

    @property
    def connected(self) -> bool:
        return self._transport.is_connected()

    async def dispatch(self, channel: str, payload: str) -> DeliveryResult:
        """Publish ``payload`` to ``channel`` and wait for the broker to acknowledge it.

        Raises:
            TransportUnavailable: If the transport is not connected. Publish is
                not attempted.
            PublishFailed: If the broker rejects or never acknowledges the message.
        """
        if not self._transport.is_connected():
            logger.warning("Dispatch to %s refused: MQTT client not connected", channel)
            raise TransportUnavailable()

        result = await asyncio.to_thread(self._publish_and_wait, channel, payload)
        logger.info("Published: %s to %s", payload, channel)
        return result

    def _publish_and_wait(self, channel: str, payload: str) -> DeliveryResult:
        try:
            info = self._transport.publish(channel, payload, qos=QOS_ACKNOWLEDGED)
        except (ValueError, OSError) as exc:
            logger.error("Failed to publish message: %s", exc)
            raise PublishFailed(str(exc)) from exc

        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._abandon(info.mid, mqtt.error_string(info.rc))

        try:
            info.wait_for_publish(timeout=self._publish_timeout)
        except (ValueError, RuntimeError) as exc:
            self._abandon(info.mid, str(exc), exc)

        if not info.is_published():
            self._abandon(
                info.mid,
                f"no broker acknowledgement within {self._publish_timeout:g}s",
            )

        return DeliveryResult(channel=channel, payload=payload, message_id=info.mid)

    def _abandon(self, mid: int, cause: str, exc: BaseException | None = None) -> NoReturn:
        # A failed command must not be replayed by the client after a reconnect.
        self._transport.discard(mid)
        logger.error("Failed to publish message: %s", cause)
        raise PublishFailed(cause) from exc


def get_command_dispatcher() -> CommandDispatcher:
    """Return a dispatcher bound to the process-wide MQTT transport."""
    return CommandDispatcher(
        get_mqtt_transport(),
        publish_timeout=settings.mqtt_publish_timeout_seconds,
    )
