"""Internal MQTT transport for the order update channel."""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from pyordertrack.config import TrackConfig
from pyordertrack.exceptions import TrackChannelError


@dataclass(frozen=True)
class ChannelMessage:
    """Normalized inbound channel message."""

    event: str
    order_id: str | None
    topic: str
    payload: dict[str, Any]


def room_topic(prefix: str, order_id: str) -> str:
    """Topic the server relays one order's updates on."""
    return f"{prefix}/orders/{order_id}"


def event_topic(prefix: str, event: str) -> str:
    """Topic a client-originated event (join, leave, ...) is published on."""
    return f"{prefix}/{event}"


def _order_id_from_topic(prefix: str, topic: str) -> str | None:
    head = f"{prefix}/orders/"
    if topic.startswith(head) and len(topic) > len(head):
        return topic[len(head) :]
    return None


def decode_channel_payload(topic: str, payload: bytes, prefix: str) -> ChannelMessage:
    """Parse an MQTT payload into a :class:`ChannelMessage`.

    Envelopes look like ``{"event": "orderUpdate", "data": {...}}``. Older
    servers use ``type`` instead of ``event``.
    """
    parsed = json.loads(payload.decode("utf-8"))
    if not isinstance(parsed, dict):
        raise TrackChannelError("Channel payload is not a JSON object")
    event_name = str(parsed.get("event") or parsed.get("type") or "")
    data = parsed.get("data")
    body = data if isinstance(data, dict) else parsed
    return ChannelMessage(
        event=event_name,
        order_id=_order_id_from_topic(prefix, topic),
        topic=topic,
        payload=body,
    )


class MqttChannelTransport:
    """Threaded paho-mqtt transport that delivers messages onto an asyncio loop.

    One instance serves one order room at a time. :meth:`open` may be
    called again after :meth:`close` (reconnects build a fresh paho client).
    """

    def __init__(
        self,
        config: TrackConfig,
        *,
        username: str | None = None,
        password: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._username = username
        self._password = password
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._topic: str | None = None

    @property
    def is_open(self) -> bool:
        """Whether the broker connection is up and subscribed."""
        return self._running

    async def open(
        self,
        order_id: str,
        *,
        on_message: Callable[[ChannelMessage], None],
        on_close: Callable[[], None],
    ) -> None:
        """Connect, subscribe to the order room and wait for the broker ack.

        Raises
        ------
        TrackChannelError
            If the broker refuses the connection or does not answer
            within ``channel_connect_timeout``.
        """
        await self.close()
        loop = asyncio.get_running_loop()
        config = self._config
        topic = room_topic(config.channel_topic_prefix, order_id)
        connected: asyncio.Future[None] = loop.create_future()

        def _resolve(error: BaseException | None) -> None:
            if connected.done():
                return
            if error is None:
                connected.set_result(None)
            else:
                connected.set_exception(error)

        self._logger.debug(
            "MQTT channel open requested host=%s port=%s topic=%s",
            config.channel_host,
            config.channel_port,
            topic,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=f"pyordertrack_{secrets.token_hex(6)}",
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if self._username:
            client.username_pw_set(self._username, self._password)
        if config.channel_tls:
            client.tls_set()

        self._topic = topic

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                loop.call_soon_threadsafe(_resolve, TrackChannelError(f"Broker refused connection: {reason_code}"))
                return
            self._logger.debug("MQTT connected reason=%s, subscribing topic=%s", reason_code, topic)
            c.subscribe(topic, qos=1)
            loop.call_soon_threadsafe(_resolve, None)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                message = decode_channel_payload(msg.topic, msg.payload, config.channel_topic_prefix)
            except Exception:
                self._logger.debug("MQTT payload parse failure topic=%s", msg.topic, exc_info=True)
                return
            self._logger.debug("Received PUBLISH topic=%s event=%s", msg.topic, message.event)
            loop.call_soon_threadsafe(on_message, message)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if not self._running:
                return
            self._logger.debug("MQTT disconnected unexpectedly: %s", reason_code)
            self._running = False
            loop.call_soon_threadsafe(on_close)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        try:
            client.connect_async(config.channel_host, config.channel_port, keepalive=config.channel_keepalive)
        except (OSError, ValueError) as exc:
            raise TrackChannelError(f"Cannot connect to {config.channel_host}:{config.channel_port}: {exc}") from exc
        client.loop_start()
        self._client = client

        try:
            await asyncio.wait_for(connected, config.channel_connect_timeout)
        except TimeoutError as exc:
            await self.close()
            raise TrackChannelError(
                f"Broker did not acknowledge within {config.channel_connect_timeout}s"
            ) from exc
        except TrackChannelError:
            await self.close()
            raise

        self._running = True
        self._logger.debug("MQTT network loop started")

    async def publish(self, event: str, payload: Mapping[str, Any]) -> None:
        """Publish a client event such as ``joinOrder``."""
        client = self._client
        if client is None or not self._running:
            raise TrackChannelError(f"Cannot publish {event}: channel is not open")
        topic = event_topic(self._config.channel_topic_prefix, event)
        info = client.publish(topic, json.dumps(dict(payload), separators=(",", ":")), qos=1)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise TrackChannelError(f"Publish of {event} failed rc={info.rc}")
        self._logger.debug("MQTT published topic=%s", topic)

    async def close(self) -> None:
        """Disconnect and stop the network loop. Safe when already closed."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._topic = None

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
