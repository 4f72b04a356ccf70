"""
Error types for the sync layer.
None of these should ever take the process down.
"""


class SyncError(Exception):
    """Base class for sync layer errors."""


class MalformedMessage(SyncError):
    """Payload is not a well-formed sample or state table.

    Callers drop the message and keep the connection.
    """


class TransportClosed(SyncError):
    """The connection to the peer went away."""


class SendFailure(SyncError):
    """A write to one recipient failed during a broadcast."""

    def __init__(self, recipient: str, cause: BaseException):
        super().__init__(f"send to {recipient} failed: {cause!r}")
        self.recipient = recipient
        self.cause = cause
