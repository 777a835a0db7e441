"""
Router Module - Black Box Interface

Purpose: Turn command messages into reconciler calls and replies
Interface: CommandRouter.handle(), CommandRouter.handle_message(),
           cmd_topic / cmdexe_topic
Hidden: Message grammar, percent decoding, kind dispatch, reply framing
"""

from .router import (
    COMMAND_PATTERN,
    EMPTY_BODY,
    INVALID_BODY,
    INVALID_FORMAT,
    INVALID_PAYLOAD,
    UNKNOWN_COMMAND,
    UNKNOWN_TYPE,
    CommandRouter,
    Operation,
    query_unescape,
)

__all__ = [
    "COMMAND_PATTERN",
    "EMPTY_BODY",
    "INVALID_BODY",
    "INVALID_FORMAT",
    "INVALID_PAYLOAD",
    "UNKNOWN_COMMAND",
    "UNKNOWN_TYPE",
    "CommandRouter",
    "Operation",
    "query_unescape",
]
