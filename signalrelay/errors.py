"""Error taxonomy for the signal pipeline.

None of these are process-fatal: the scheduler and dispatcher catch and log
them, and only ``ValidationError`` is surfaced to HTTP callers (as a 400).
"""

from __future__ import annotations


class SignalRelayError(Exception):
    """Base class for pipeline errors."""


class ValidationError(SignalRelayError):
    """Inbound signal body is malformed."""

    def __init__(self, details: list[str]) -> None:
        self.details = list(details)
        super().__init__("; ".join(self.details) or "Invalid signal format")


class SourceFetchError(SignalRelayError):
    """A message source could not be reached or returned garbage."""

    def __init__(self, source_id: str, message: str) -> None:
        self.source_id = source_id
        super().__init__(f"{source_id}: {message}")


class ClassificationError(SignalRelayError):
    """Processing a single message's text failed unexpectedly."""


class HandlerError(SignalRelayError):
    """A registered consumer raised while handling a signal."""

    def __init__(self, handler_id: str, cause: BaseException) -> None:
        self.handler_id = handler_id
        self.cause = cause
        super().__init__(f"{handler_id}: {cause}")


class DownstreamDeliveryError(SignalRelayError):
    """Forwarding a signal to another process failed."""
