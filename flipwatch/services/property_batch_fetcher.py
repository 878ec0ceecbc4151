# flipwatch/services/property_batch_fetcher.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional

from ..clients.sfr import SfrApiError, SfrClient
from ..config import settings
from ..schemas import BatchItem, PropertyDetail

log = logging.getLogger(__name__)


@dataclass
class FetchedBatch:
    number: int  # 1-based
    total: int
    addresses: list[str]
    items: list[tuple[str, PropertyDetail]]  # (address as echoed by the API, detail)


def chunked(seq: list[str], size: int) -> Iterator[list[str]]:
    for i in range(0, len(seq), size):
        yield seq[i : i + size]


def _usable(item: BatchItem) -> bool:
    return not item.error and item.property is not None and bool(item.address)


def iter_property_batches(
    client: SfrClient,
    addresses: list[str],
    *,
    market_code: str,
    batch_size: Optional[int] = None,
) -> Iterator[FetchedBatch]:
    """
    Fetch property details for `addresses` in batches. A batch that fails
    (HTTP, network or malformed body) is logged and skipped; the next one still runs.
    """
    size = int(batch_size or settings.sync_batch_fetch_size)
    total = (len(addresses) + size - 1) // size
    ctx = {"market_code": market_code}

    for number, batch in enumerate(chunked(addresses, size), start=1):
        log.info(
            "[%s SYNC] Fetching batch %d/%d (%d addresses)",
            market_code,
            number,
            total,
            len(batch),
            extra={**ctx, "batch": number},
        )
        try:
            raw = client.fetch_property_batch(batch)
        except SfrApiError as e:
            log.error(
                "[%s SYNC] Batch API error on batch %d: %s",
                market_code,
                number,
                e,
                extra={**ctx, "batch": number},
            )
            continue

        items: list[tuple[str, PropertyDetail]] = []
        for item in raw:
            if not _usable(item):
                log.info(
                    "[%s SYNC] Skipping batch item %r: %s",
                    market_code,
                    item.address,
                    item.error or "no property",
                    extra={**ctx, "batch": number},
                )
                continue
            items.append((item.address, item.property))

        yield FetchedBatch(number=number, total=total, addresses=batch, items=items)
