"""Bounded memory of transfers the engine has already acted on."""

from __future__ import annotations

from collections import OrderedDict
from logging import getLogger
from typing import Final

log = getLogger(__name__)

DEFAULT_MAX_ENTRIES: Final[int] = 10_000


class ProcessedTransferCache:
    """Transfer ids seen by the engine, evicted once they age out of the scan window.

    Entries remember the block height the transfer was mined in. ``evict_below``
    drops everything strictly below the oldest height the scanner can still
    return, so the cache never grows past what a rolling window can replay.
    ``max_entries`` bounds memory for transfers whose height is unknown.
    """

    def __init__(self, *, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self._max_entries = max_entries
        self._entries: OrderedDict[str, int | None] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, transfer_id: object) -> bool:
        return isinstance(transfer_id, str) and transfer_id.lower() in self._entries

    def mark(self, transfer_id: str, block_height: int | None) -> None:
        key = transfer_id.lower()
        self._entries[key] = block_height
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            log.debug("Processed-transfer cache full, evicted %s", evicted)

    def evict_below(self, height: int) -> int:
        stale = [
            key
            for key, block_height in self._entries.items()
            if block_height is not None and block_height < height
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)
