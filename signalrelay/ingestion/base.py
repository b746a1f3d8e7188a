"""Base interfaces for message sources."""

from __future__ import annotations

from abc import ABC, abstractmethod

from signalrelay.models.signal import RawMessage


class MessageSource(ABC):
    """Abstract base class for anything that produces chat messages.

    ``fetch_messages`` returns the source's full current message list for one
    channel, oldest first. The scheduler diffs successive lists itself, so a
    source does not need to track what it already returned.
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Identifier for this source type."""
        ...

    @abstractmethod
    async def fetch_messages(self, source_id: str) -> list[RawMessage]:
        """Fetch the ordered message list for ``source_id``.

        Raises ``SourceFetchError`` on transient failures.
        """
        ...

    async def health_check(self) -> bool:
        """Check if the source is reachable."""
        return True
