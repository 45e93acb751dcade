"""Collect candidate transfers from a rolling window of recent blocks."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .addresses import addresses_equal
from .amounts import format_amount
from .errors import UpstreamUnavailableError

if TYPE_CHECKING:
    from .model import CandidateTransfer
    from .ports.ledger import LedgerReader

log = getLogger(__name__)


@dataclass(slots=True)
class ScanResult:
    transfers: list[CandidateTransfer]
    head_height: int | None = None
    start_height: int | None = None
    failed_blocks: int = 0


@dataclass(slots=True)
class LedgerScanner:
    """Fetch blocks ``[head - window, head]`` and keep transfers addressed to us.

    A block that cannot be fetched is skipped; a head lookup that fails yields an
    empty result. Nothing here raises: an empty result only means nothing was
    observed this cycle.
    """

    reader: LedgerReader
    block_delay_seconds: float = 0.1

    async def scan_recent_transfers(self, to_address: str, window_size: int) -> ScanResult:
        try:
            head = await self.reader.head_height()
        except UpstreamUnavailableError as exc:
            log.warning("Could not read chain head, skipping scan: %s", exc)
            return ScanResult(transfers=[])

        start = max(0, head - window_size)
        log.info("Scanning blocks %s to %s", start, head)

        transfers: list[CandidateTransfer] = []
        failed = 0
        for height in range(start, head + 1):
            try:
                block_transfers = await self.reader.block_transfers(height)
            except UpstreamUnavailableError as exc:
                failed += 1
                log.warning("Error getting block %s: %s", height, exc)
            else:
                for transfer in block_transfers:
                    if not addresses_equal(transfer.to_address, to_address):
                        continue
                    log.info(
                        "Found incoming transfer %s from %s amount %s",
                        transfer.transfer_id,
                        transfer.from_address,
                        format_amount(transfer.amount),
                    )
                    transfers.append(transfer)
            if self.block_delay_seconds > 0 and height < head:
                await asyncio.sleep(self.block_delay_seconds)

        if not transfers:
            log.info("No incoming transfers found in blocks %s to %s", start, head)
        return ScanResult(
            transfers=transfers,
            head_height=head,
            start_height=start,
            failed_blocks=failed,
        )
