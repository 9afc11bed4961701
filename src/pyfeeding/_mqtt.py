"""MQTT change-feed runtime.

Other clients (or a database trigger bridge) publish row changes as JSON
``{"action": "insert|update|delete", "row": {...}}`` on
``{prefix}/state`` and ``{prefix}/history``. This runtime subscribes to
both topics on paho's network thread and hands decoded events to the
asyncio loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt
from pydantic import ValidationError

from pyfeeding.config import FeedingConfig
from pyfeeding.exceptions import FeedingError
from pyfeeding.state.events import FeedChannel, FeedEvent


@dataclass(frozen=True)
class MqttFeedSettings:
    """Broker details required to follow the change feed."""

    host: str
    port: int
    topic_prefix: str
    username: str | None = None
    password: str | None = None
    tls: bool = False
    keepalive: int = 120

    @classmethod
    def from_config(cls, config: FeedingConfig) -> MqttFeedSettings:
        if not config.mqtt_host:
            raise FeedingError("MQTT host is not configured")
        return cls(
            host=config.mqtt_host,
            port=config.mqtt_port,
            topic_prefix=config.mqtt_topic_prefix.rstrip("/"),
            username=config.mqtt_username,
            password=config.mqtt_password,
            tls=config.mqtt_tls,
            keepalive=config.mqtt_keepalive,
        )

    def topic(self, channel: FeedChannel) -> str:
        return f"{self.topic_prefix}/{channel.value}"


def parse_feed_message(topic: str, payload: bytes) -> FeedEvent:
    """Decode one MQTT message into a :class:`FeedEvent`.

    The channel is taken from the last topic level.
    """
    channel_name = topic.rsplit("/", 1)[-1]
    try:
        channel = FeedChannel(channel_name)
    except ValueError as exc:
        raise FeedingError(f"Unknown feed topic {topic!r}") from exc

    try:
        parsed = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise FeedingError(f"Feed payload on {topic} is not JSON") from exc
    if not isinstance(parsed, dict):
        raise FeedingError(f"Feed payload on {topic} is not an object")

    try:
        return FeedEvent(
            channel=channel,
            action=parsed.get("action", "update"),
            row=parsed.get("row") or {},
        )
    except ValidationError as exc:
        raise FeedingError(f"Feed payload on {topic} is malformed: {exc}") from exc


class FeedMqttRuntime:
    """Threaded paho-mqtt runtime that emits feed events onto an asyncio loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        on_event: Callable[[FeedEvent], None],
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_event = on_event
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._topics: tuple[str, ...] = ()

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def handle_message(self, topic: str, payload: bytes) -> None:
        """Decode a message and schedule its delivery on the loop."""
        try:
            event = parse_feed_message(topic, payload)
        except FeedingError:
            self._logger.debug("Dropping undecodable feed message on %s", topic, exc_info=True)
            return
        self._logger.debug("Feed %s %s received", event.channel, event.action)
        self._loop.call_soon_threadsafe(self._on_event, event)

    def start(self, settings: MqttFeedSettings) -> None:
        """Connect and subscribe to the state and history topics."""
        self.stop()
        self._logger.debug(
            "MQTT feed start requested host=%s port=%s prefix=%s",
            settings.host,
            settings.port,
            settings.topic_prefix,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if settings.username:
            client.username_pw_set(settings.username, settings.password)
        if settings.tls:
            client.tls_set()

        self._topics = tuple(settings.topic(channel) for channel in FeedChannel)

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            for topic in self._topics:
                self._logger.debug("MQTT subscribing topic=%s", topic)
                c.subscribe(topic, qos=1)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            self.handle_message(msg.topic, msg.payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(settings.host, settings.port, keepalive=settings.keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._topics = ()

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
