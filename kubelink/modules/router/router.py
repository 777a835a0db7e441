"""
Command router.

Parses command messages of the form::

    <correlationId>@<operation>|<percent-encoded manifest>

dispatches them to the reconciler for the manifest's kind and publishes
``<correlationId>@<operation>|<result>`` on the reply topic. Every
message gets exactly one reply.
"""

import asyncio
import logging
import re
from enum import Enum
from typing import Mapping, Optional, Union
from urllib.parse import unquote_to_bytes

from kubelink.errors import ManifestFormatError, UnsupportedKindError
from kubelink.modules.manifest import ResourceKind, decode_manifest
from kubelink.modules.reconciler import ResourceReconciler
from kubelink.modules.transport import Publisher

# \Z rather than $ so a trailing newline does not match
COMMAND_PATTERN = re.compile(r"^([\w\-]+)@([\w\-]+)\|(.*)\Z", re.ASCII)
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

DEFAULT_REPLY_DELAY = 0.5

INVALID_PAYLOAD = "invalid payload"
EMPTY_BODY = "empty command body"
INVALID_BODY = "command body is invalid format"
UNKNOWN_COMMAND = "unknown command"
INVALID_FORMAT = "invalid format, skip this message"
UNKNOWN_TYPE = "unknown type, skip this message"


class Operation(str, Enum):
    """Supported command operations."""

    APPLY = "apply"
    DELETE = "delete"


def query_unescape(value: str) -> bytes:
    """
    Strict query-string unescaping.

    ``+`` decodes to a space and every ``%`` must start a two-digit hex
    escape. The result is raw bytes; they need not be valid UTF-8.

    Raises:
        ValueError: Malformed escape
    """
    if _BAD_ESCAPE.search(value):
        raise ValueError(f"invalid URL escape in {value!r}")
    return unquote_to_bytes(value.replace("+", " "))


class CommandRouter:
    """Stateless command handler; safe to run for overlapping messages."""

    def __init__(
        self,
        publisher: Publisher,
        reconcilers: Mapping[ResourceKind, ResourceReconciler],
        topic_base: str,
        reply_delay: float = DEFAULT_REPLY_DELAY,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize router.

        Args:
            publisher: Transport used for replies
            reconcilers: Reconciler per manifest kind
            topic_base: Prefix for the command and reply topics
            reply_delay: Seconds to wait before publishing a reply
            logger: Logging sink, defaults to the module logger
        """
        self.publisher = publisher
        self.reconcilers = dict(reconcilers)
        self.topic_base = topic_base
        self.reply_delay = reply_delay
        self.logger = logger or logging.getLogger(__name__)

    @property
    def cmd_topic(self) -> str:
        return f"{self.topic_base}/cmd"

    @property
    def cmdexe_topic(self) -> str:
        return f"{self.topic_base}/cmdexe"

    async def handle_message(self, topic: str, payload: Union[str, bytes]) -> None:
        """Transport subscription callback."""
        await self.handle(payload)

    async def handle(self, payload: Union[str, bytes, None]) -> str:
        """
        Handle one command message and publish its reply.

        Args:
            payload: Raw message payload

        Returns:
            The reply that was published

        Raises:
            TransportError: The reply could not be published
        """
        text = self._as_text(payload)
        self.logger.info(f"received message: {text!r}")

        match = COMMAND_PATTERN.match(text) if text is not None else None
        if match is None:
            await self._publish(INVALID_PAYLOAD)
            return INVALID_PAYLOAD

        correlation_id, operation, encoded_body = match.groups()
        result = await self._execute(operation, encoded_body)

        reply = f"{correlation_id}@{operation}|{result}"
        await self._publish(reply)
        return reply

    async def _execute(self, operation: str, encoded_body: str) -> str:
        if not encoded_body:
            self.logger.info(EMPTY_BODY)
            return EMPTY_BODY

        try:
            data = query_unescape(encoded_body)
        except ValueError as e:
            self.logger.info(f"{INVALID_BODY}: {e}")
            return INVALID_BODY

        self.logger.debug(f"data: {data!r}")

        try:
            op = Operation(operation)
        except ValueError:
            self.logger.info(f"{UNKNOWN_COMMAND}: {operation}")
            return UNKNOWN_COMMAND

        try:
            manifest = decode_manifest(data)
        except UnsupportedKindError as e:
            self.logger.info(f"{UNKNOWN_TYPE}: {e.kind}")
            return UNKNOWN_TYPE
        except ManifestFormatError as e:
            self.logger.info(f"{INVALID_FORMAT}: {e}")
            return INVALID_FORMAT

        reconciler = self.reconcilers.get(manifest.resource_kind)
        if reconciler is None:
            self.logger.info(f"{UNKNOWN_TYPE}: no reconciler for {manifest.kind}")
            return UNKNOWN_TYPE

        if op is Operation.APPLY:
            return await reconciler.apply(manifest)
        return await reconciler.delete(manifest)

    async def _publish(self, payload: str) -> None:
        if self.reply_delay > 0:
            await asyncio.sleep(self.reply_delay)
        try:
            await self.publisher.publish(self.cmdexe_topic, payload)
        except Exception as e:
            self.logger.error(f"publish error, topic={self.cmdexe_topic}: {e}")
            raise
        self.logger.info(f"send message: {payload}")

    @staticmethod
    def _as_text(payload: Union[str, bytes, None]) -> Optional[str]:
        if payload is None:
            return ""
        if isinstance(payload, bytes):
            try:
                return payload.decode("utf-8")
            except UnicodeDecodeError:
                return None
        return payload
