"""Tests for acknowledged command dispatch."""

from __future__ import annotations

import paho.mqtt.client as mqtt
import pytest

from nubes_gate.core.errors import PublishFailed, TransportUnavailable
from nubes_gate.services.dispatcher import CommandDispatcher
from nubes_gate.services.mqtt import MqttTransport


class TestCommandDispatcher:
    """Dispatch over a mocked MQTT transport."""

    @pytest.mark.asyncio
    async def test_publishes_with_acknowledged_qos(self, dispatcher, transport) -> None:
        result = await dispatcher.dispatch("home/door/cmd", "ON")

        transport.publish.assert_called_once_with("home/door/cmd", "ON", qos=1)
        transport.publish.return_value.wait_for_publish.assert_called_once_with(timeout=0.1)
        assert result.channel == "home/door/cmd"
        assert result.payload == "ON"
        assert result.qos == 1
        assert result.message_id == 7

    @pytest.mark.asyncio
    async def test_disconnected_transport_is_never_published(self, dispatcher, transport) -> None:
        transport.is_connected.return_value = False

        with pytest.raises(TransportUnavailable) as exc_info:
            await dispatcher.dispatch("home/door/cmd", "ON")

        assert exc_info.value.reason == "MQTT client not connected"
        assert exc_info.value.status_code == 503
        transport.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejected_publish_fails(self, dispatcher, transport) -> None:
        transport.publish.return_value.rc = mqtt.MQTT_ERR_NO_CONN

        with pytest.raises(PublishFailed) as exc_info:
            await dispatcher.dispatch("home/door/cmd", "ON")

        assert exc_info.value.reason == "Failed to send command"
        assert exc_info.value.cause
        transport.publish.return_value.wait_for_publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_unacknowledged_publish_fails(self, dispatcher, transport) -> None:
        transport.publish.return_value.is_published.return_value = False

        with pytest.raises(PublishFailed) as exc_info:
            await dispatcher.dispatch("home/door/cmd", "ON")

        assert "acknowledgement" in exc_info.value.cause

    @pytest.mark.asyncio
    async def test_wait_error_fails(self, dispatcher, transport) -> None:
        transport.publish.return_value.wait_for_publish.side_effect = RuntimeError("queue full")

        with pytest.raises(PublishFailed) as exc_info:
            await dispatcher.dispatch("home/door/cmd", "ON")

        assert exc_info.value.cause == "queue full"

    @pytest.mark.asyncio
    async def test_publish_exception_fails(self, dispatcher, transport) -> None:
        transport.publish.side_effect = ValueError("Invalid topic.")

        with pytest.raises(PublishFailed):
            await dispatcher.dispatch("home/#", "ON")

    def test_connected_reflects_transport(self, dispatcher, transport) -> None:
        assert dispatcher.connected is True
        transport.is_connected.return_value = False
        assert dispatcher.connected is False

    @pytest.mark.asyncio
    async def test_failed_publish_is_dropped_from_transport(self, dispatcher, transport) -> None:
        transport.publish.return_value.is_published.return_value = False

        with pytest.raises(PublishFailed):
            await dispatcher.dispatch("home/door/cmd", "ON")

        transport.discard.assert_called_once_with(7)

    @pytest.mark.asyncio
    async def test_successful_publish_is_not_dropped(self, dispatcher, transport) -> None:
        await dispatcher.dispatch("home/door/cmd", "ON")
        transport.discard.assert_not_called()


@pytest.mark.asyncio
async def test_connection_lost_before_publish_leaves_nothing_queued(mocker) -> None:
    """A command refused by a dropped connection is not resent after reconnect."""
    transport = MqttTransport("broker.invalid")
    mocker.patch.object(transport, "is_connected", return_value=True)
    dispatcher = CommandDispatcher(transport, publish_timeout=0.1)

    with pytest.raises(PublishFailed) as exc_info:
        await dispatcher.dispatch("home/door/cmd", "ON")

    assert exc_info.value.cause == mqtt.error_string(mqtt.MQTT_ERR_NO_CONN)
    assert len(transport._client._out_messages) == 0
