"""Error taxonomy for the log streaming core."""

from __future__ import annotations


class ContainerLogError(Exception):
    """Base class for log streaming failures."""


class AuthError(ContainerLogError):
    """Credential could not be fetched, was malformed, or was rejected."""


class TransportError(ContainerLogError):
    """Opening, sending on, or closing the streaming transport failed."""


class TransportClosed(TransportError):
    """The transport closed; carries the close code and reason."""

    def __init__(self, code: int, reason: str = "") -> None:
        self.code = code
        self.reason = reason
        super().__init__(f"connection closed (code {code}: {reason or 'No reason provided'})")


class ParseError(ContainerLogError):
    """An inbound frame could not be decoded into a log entry."""
