"""In-process cache for card metadata."""
from __future__ import annotations

import time
from typing import Callable

from combined_dashboard.domain import CardMetadata


class CardMetadataCache:
    """Keeps card metadata per card id.

    With ``ttl_seconds`` left as ``None`` entries live for the lifetime of the
    cache; otherwise they are dropped once older than the TTL.
    """

    def __init__(self, ttl_seconds: float | None = None, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[int, tuple[float, CardMetadata]] = {}

    def get(self, card_id: int) -> CardMetadata | None:
        entry = self._entries.get(card_id)
        if entry is None:
            return None
        stored_at, metadata = entry
        if self._ttl is not None and self._clock() - stored_at >= self._ttl:
            del self._entries[card_id]
            return None
        return metadata

    def set(self, metadata: CardMetadata) -> None:
        self._entries[metadata.card_id] = (self._clock(), metadata)

    def invalidate(self, card_id: int | None = None) -> None:
        if card_id is None:
            self._entries.clear()
        else:
            self._entries.pop(card_id, None)

    def __contains__(self, card_id: object) -> bool:
        return isinstance(card_id, int) and self.get(card_id) is not None

    def __len__(self) -> int:
        return len(self._entries)
