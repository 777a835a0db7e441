"""
Transport Module - Black Box Interface

Purpose: Pub/sub messaging channel for commands, replies and reports
Interface: connect(), subscribe(), publish(), close()
Hidden: Redis connection handling, listener tasks

Can be replaced with MQTT, NATS, or any topic-based broker.
"""

from .transport import MessageHandler, Publisher, RedisTransport, Transport

__all__ = ["MessageHandler", "Publisher", "RedisTransport", "Transport"]
