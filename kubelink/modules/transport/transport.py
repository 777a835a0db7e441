"""
Pub/sub transport over Redis.

Topics map one-to-one onto Redis channels. Messages for a subscription
are handed to the handler one at a time in delivery order; a handler
failure ends the subscription's listener task with that exception.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

import redis.asyncio as redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from kubelink.config.provider import TransportConfig
from kubelink.errors import TransportError

# payloads are delivered as raw bytes; decoding is up to the handler
MessageHandler = Callable[[str, bytes], Awaitable[None]]


class Publisher(Protocol):
    """Anything that can publish a text payload to a topic."""

    async def publish(self, topic: str, payload: str) -> None:
        ...


class Transport(Publisher, Protocol):
    """Protocol for messaging transports."""

    async def connect(self) -> None:
        ...

    async def subscribe(self, topic: str, handler: MessageHandler) -> asyncio.Task:
        ...

    async def close(self) -> None:
        ...


class RedisTransport:
    """Transport backed by Redis pub/sub."""

    def __init__(self, redis_client: redis.Redis, logger: Optional[logging.Logger] = None):
        """
        Initialize transport.

        Args:
            redis_client: Async Redis client returning raw bytes
            logger: Logging sink, defaults to the module logger
        """
        self.redis = redis_client
        self.logger = logger or logging.getLogger(__name__)
        self.connected = False
        self._pubsubs: List[PubSub] = []
        self._listeners: List[asyncio.Task] = []

    @classmethod
    def from_config(
        cls, config: TransportConfig, logger: Optional[logging.Logger] = None
    ) -> "RedisTransport":
        """Create a transport from TransportConfig."""
        options: Dict[str, Any] = {}
        if config.use_tls:
            options["ssl_ca_certs"] = config.ca_path
        client = redis.from_url(
            config.url,
            username=config.username,
            password=config.password,
            decode_responses=False,
            **options,
        )
        return cls(client, logger=logger)

    async def connect(self) -> None:
        """Verify the broker is reachable."""
        try:
            await self.redis.ping()
        except RedisError as e:
            raise TransportError(f"connect error: {e}") from e
        self.connected = True
        self.logger.info("Connected to message broker")

    async def publish(self, topic: str, payload: str) -> None:
        """
        Publish a payload and wait for the broker to acknowledge it.

        Raises:
            TransportError: The broker rejected or never received the message
        """
        try:
            receivers = await self.redis.publish(topic, payload)
        except RedisError as e:
            raise TransportError(f"publish error, topic={topic}: {e}") from e
        self.logger.debug(f"published to {topic} ({receivers} receivers)")

    async def subscribe(self, topic: str, handler: MessageHandler) -> asyncio.Task:
        """
        Subscribe a handler to a topic.

        Returns:
            The listener task; it finishes only on failure or close()
        """
        pubsub = self.redis.pubsub()
        try:
            await pubsub.subscribe(topic)
        except RedisError as e:
            await pubsub.aclose()
            raise TransportError(f"subscribe error, topic={topic}: {e}") from e

        self.logger.info(f"Subscribed to channel: {topic}")
        self._pubsubs.append(pubsub)
        listener = asyncio.create_task(self._listen(pubsub, handler), name=f"listener:{topic}")
        self._listeners.append(listener)
        return listener

    async def _listen(self, pubsub: PubSub, handler: MessageHandler) -> None:
        async for message in pubsub.listen():
            if message["type"] != "message":
                continue
            channel = message["channel"]
            if isinstance(channel, bytes):
                channel = channel.decode("utf-8", errors="replace")
            await handler(channel, message["data"])

    async def close(self) -> None:
        """Stop listeners, drop subscriptions and close the connection pool."""
        for listener in self._listeners:
            listener.cancel()
        if self._listeners:
            await asyncio.gather(*self._listeners, return_exceptions=True)
        self._listeners.clear()

        for pubsub in self._pubsubs:
            try:
                await pubsub.aclose()
            except RedisError as e:
                self.logger.warning(f"Failed to close subscription: {e}")
        self._pubsubs.clear()

        await self.redis.aclose()
        self.connected = False
        self.logger.info("Message broker connection closed")
