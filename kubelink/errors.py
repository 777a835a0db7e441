"""
Kubelink error taxonomy.

Every failure that crosses a module boundary is one of these. Callers
branch on the class, never on message text.
"""

from typing import Optional


class KubelinkError(Exception):
    """Base class for all kubelink errors."""


class ClusterApiError(KubelinkError):
    """Generic cluster API failure (auth, network, server error)."""

    def __init__(self, message: str, status: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.reason = reason


class NotFoundError(ClusterApiError):
    """The requested object does not exist."""


class ConflictError(ClusterApiError):
    """Write rejected because the stored object changed since it was read."""


class ManifestError(KubelinkError):
    """A command body could not be turned into a supported manifest."""


class ManifestFormatError(ManifestError):
    """Body is not a well-formed manifest."""


class UnsupportedKindError(ManifestError):
    """Body is a well-formed manifest of a kind kubelink does not handle."""

    def __init__(self, kind: str):
        super().__init__(f"unsupported kind: {kind}")
        self.kind = kind


class TransportError(KubelinkError):
    """Messaging channel failure (connect, subscribe or publish)."""


class ChannelClosedError(KubelinkError):
    """Send attempted on a closed signal channel."""
