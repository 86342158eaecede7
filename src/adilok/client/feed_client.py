import asyncio
import logging
import os
import socket
from typing import Optional

import paho.mqtt.client as mqtt

from ..common.exceptions import CommunicationError
from ..core.config import BrokerConfig, TimingConfig
from ..core.dispatcher import EventDispatcher
from ..core.events import Channel
from ..hardware.indicators import StatusIndicators

logger = logging.getLogger(__name__)


class FeedClient:
    """MQTT subscriber for the rail traffic feed.

    paho runs its network loop in its own thread; every message is
    handed to the asyncio loop so all state changes happen there.
    """

    def __init__(
        self,
        config: BrokerConfig,
        timing: TimingConfig,
        dispatcher: EventDispatcher,
        indicators: StatusIndicators,
    ):
        self.config = config
        self.timing = timing
        self.dispatcher = dispatcher
        self.indicators = indicators
        self.running = False
        self.connected = False
        self._client: Optional[mqtt.Client] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def topics(self) -> dict:
        topics = {Channel.TRAIN_TRACKING: self.config.train_tracking_topic}
        if self.config.subscribe_route_sets:
            topics[Channel.ROUTE_SET] = self.config.route_set_topic
        return topics

    def channel_for(self, topic: str) -> Optional[Channel]:
        for channel, topic_filter in self.topics.items():
            if mqtt.topic_matches_sub(topic_filter, topic):
                return channel
        return None

    def _build_client(self) -> mqtt.Client:
        client_id = self.config.client_id or f"adilok-{socket.getfqdn()}-{os.getpid()}"
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            transport=self.config.transport,
        )
        if self.config.transport == "websockets":
            client.ws_set_options(path=self.config.ws_path)
        if self.config.username or self.config.password:
            client.username_pw_set(self.config.username, self.config.password)
        if self.config.use_tls:
            client.tls_set()
        client.reconnect_delay_set(
            min_delay=self.config.reconnect_min_seconds,
            max_delay=self.config.reconnect_max_seconds,
        )
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        return client

    def _call_in_loop(self, callback, *args) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(callback, *args)

    def _on_connect(self, client, _userdata, _flags, reason_code, _properties=None):
        if reason_code.is_failure:
            self.connected = False
            logger.error(f"Feed connection refused: {reason_code}")
            self._call_in_loop(self.indicators.set_error, True, "Connection refused")
            return

        self.connected = True
        logger.info("Socket connected.")
        for topic in self.topics.values():
            client.subscribe(topic)
            logger.info(f"Subscribed to {topic}")

    def _on_disconnect(self, _client, _userdata, _flags, reason_code, _properties=None):
        self.connected = False
        self._call_in_loop(self.indicators.set_error, True, "Socket disconnected")
        if self.running:
            logger.warning(f"Socket disconnected ({reason_code}), reconnecting...")
        else:
            logger.info("Socket disconnected.")

    def _on_message(self, _client, _userdata, message):
        channel = self.channel_for(message.topic)
        if channel is None:
            logger.warning(f"Message on unexpected topic {message.topic}")
            return
        self._call_in_loop(self.dispatcher.handle_message, channel, message.payload)

    async def start(self) -> None:
        """Connect in the background and start the paho network thread"""
        self._loop = asyncio.get_running_loop()
        self._client = self._build_client()
        self.running = True
        logger.info(f"Connecting to {self.config.host}:{self.config.port}")
        try:
            self._client.connect_async(
                self.config.host, self.config.port, self.config.keepalive_seconds
            )
            self._client.loop_start()
        except Exception as e:
            self.running = False
            raise CommunicationError(f"Cannot start feed connection: {e}") from e

    def _restart(self, client: mqtt.Client) -> None:
        """Reconnect while the paho network thread is stopped"""
        client.loop_stop()
        try:
            client.reconnect()
        except Exception as e:
            logger.error(f"Reconnect failed: {e}")
        finally:
            client.loop_start()

    async def reconnect(self) -> None:
        if self._client is None:
            return
        logger.info("Reconnecting...")
        await asyncio.get_running_loop().run_in_executor(
            None, self._restart, self._client
        )

    async def watch(self) -> None:
        """Raise the error indicator and reconnect when the feed goes silent"""
        while self.running:
            await asyncio.sleep(self.timing.watchdog_check_seconds)
            if self.dispatcher.seconds_since_last_message() > self.timing.watchdog_seconds:
                self.indicators.set_error(True)
                self.dispatcher.touch()
                logger.warning(
                    f"No socket messages ({self.dispatcher.message_count} received, "
                    f"{self.dispatcher.error_count} errors)."
                )
                await self.reconnect()

    async def stop(self) -> None:
        self.running = False
        if self._client is None:
            return
        try:
            self._client.disconnect()
        except Exception:
            logger.debug("Cleanup failed during disconnect", exc_info=True)
        try:
            self._client.loop_stop()
        except Exception:
            logger.debug("Cleanup failed during disconnect", exc_info=True)
        self._client = None
