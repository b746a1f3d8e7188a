"""Message filters applied between fetching and classification."""

from __future__ import annotations

from collections import OrderedDict
from typing import Iterable

from signalrelay.models.signal import RawMessage


class AllowListFilter:
    """Pass a message only if its content mentions an allow-listed author or keyword.

    Matching is a case-insensitive substring test. An empty allow-list lets
    everything through.
    """

    def __init__(self, entries: Iterable[str] = ()) -> None:
        self.entries = [entry.strip().lower() for entry in entries if entry and entry.strip()]

    @property
    def enabled(self) -> bool:
        return bool(self.entries)

    def allows(self, message: RawMessage) -> bool:
        if not self.entries:
            return True
        content = (message.content or "").lower()
        return any(entry in content for entry in self.entries)


class RecentFingerprints:
    """Remembers the last ``window`` forwarded messages to drop cross-source repeats.

    The same post relayed into two monitored groups shows up once per group.
    Each fingerprint keeps the source it was last forwarded from, so a trader
    re-posting in the same group is not treated as a relay.
    """

    def __init__(self, window: int = 500) -> None:
        self.window = max(0, window)
        self._seen: OrderedDict[tuple[str, str], str] = OrderedDict()

    @staticmethod
    def fingerprint(message: RawMessage) -> tuple[str, str]:
        author = (message.author or "").strip().lower()
        content = " ".join((message.content or "").split())
        return author, content

    def seen_before(self, message: RawMessage) -> bool:
        """True if ``message`` was already forwarded from another source.

        Anything else is remembered (or refreshed) and False is returned.
        """
        if self.window == 0:
            return False

        key = self.fingerprint(message)
        last_source = self._seen.get(key)
        if last_source is not None and last_source != message.source_id:
            return True

        self._seen[key] = message.source_id
        self._seen.move_to_end(key)
        if len(self._seen) > self.window:
            self._seen.popitem(last=False)
        return False

    def clear(self) -> None:
        self._seen.clear()
