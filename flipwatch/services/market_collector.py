# flipwatch/services/market_collector.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ..clients.sfr import SfrApiError, SfrClient
from ..config import settings
from ..domain.classifier import classify_parties
from ..domain.normalization import parse_date
from ..schemas import MarketRecord
from .sync_state_service import advance_watermark

log = logging.getLogger(__name__)


@dataclass
class CollectedRecords:
    """
    Result of paging the market feed for one run.

    `records` maps "{address}, {city}, {state}" to every qualifying raw record
    for that address, in feed order (one address can carry an acquisition and
    a later resale).
    """

    records: dict[str, list[MarketRecord]] = field(default_factory=dict)
    boundary_date: Optional[date] = None  # max sale date seen across fetched pages
    pages_fetched: int = 0
    skipped_individual: int = 0
    skipped_incomplete: int = 0
    skipped_excluded: int = 0
    stop_reason: str = ""

    @property
    def addresses(self) -> list[str]:
        return list(self.records.keys())

    def add(self, key: str, record: MarketRecord) -> None:
        self.records.setdefault(key, []).append(record)

    def observe_sale_date(self, d: Optional[date]) -> None:
        if d is not None and (self.boundary_date is None or d > self.boundary_date):
            self.boundary_date = d


def is_excluded(address: Optional[str], excluded_addresses: Iterable[str]) -> bool:
    """Case-insensitive substring match in either direction on the street address."""
    a = (address or "").strip().lower()
    if not a:
        return False
    for excluded in excluded_addresses:
        e = (excluded or "").strip().lower()
        if e and (e in a or a in e):
            return True
    return False


def _page_max_sale_date(page: list[MarketRecord]) -> Optional[date]:
    best: Optional[date] = None
    for r in page:
        d = parse_date(r.sale_date)
        if d is not None and (best is None or d > best):
            best = d
    return best


def collect_market_records(
    db: Session,
    client: SfrClient,
    *,
    msa: str,
    market_code: str,
    state_id: int,
    start_date: date,
    today: date,
    excluded_addresses: Iterable[str] = (),
    page_size: Optional[int] = None,
) -> CollectedRecords:
    """
    Page /buyers/market from `start_date` to `today`, keeping only records with a
    corporate buyer or seller. The watermark advances after every fetched page
    whether or not anything on it qualified.
    """
    size = int(page_size or settings.sync_page_size)
    excluded = [e for e in excluded_addresses if e]
    out = CollectedRecords()
    ctx = {"market": msa, "market_code": market_code}

    current_min = start_date
    page_num = 1

    while True:
        try:
            page = client.fetch_market_page(
                msa=msa,
                sales_date_min=current_min.isoformat(),
                sales_date_max=today.isoformat(),
                page_size=size,
            )
        except SfrApiError as e:
            log.error(
                "[%s SYNC] Buyers market API error on page %d: %s",
                market_code,
                page_num,
                e,
                extra={**ctx, "page": page_num},
            )
            out.stop_reason = "api_error"
            break

        if not page.row_count:
            log.info("[%s SYNC] No more data on page %d, stopping", market_code, page_num, extra={**ctx, "page": page_num})
            out.stop_reason = "empty_page"
            break

        out.pages_fetched += 1
        log.info(
            "[%s SYNC] Fetched page %d (from %s) with %d records",
            market_code,
            page_num,
            current_min.isoformat(),
            page.row_count,
            extra={**ctx, "page": page_num},
        )

        for record in page.records:
            parties = classify_parties(record.buyer_name, record.seller_name, record.buyer_ownership_code)
            if not parties.any_corporate:
                out.skipped_individual += 1
                continue

            key = record.address_key()
            if key is None:
                out.skipped_incomplete += 1
                continue

            if excluded and is_excluded(record.address, excluded):
                out.skipped_excluded += 1
                log.info("[%s SYNC] Skipping excluded address: %s", market_code, key, extra=ctx)
                continue

            out.add(key, record)

        page_max = _page_max_sale_date(page.records)
        out.observe_sale_date(page_max)

        if page_max is not None:
            persisted = advance_watermark(db, state_id, page_max)
            log.info(
                "[%s SYNC] Persisted last_sale_date: %s after page %d",
                market_code,
                persisted.isoformat() if persisted else None,
                page_num,
                extra={**ctx, "page": page_num},
            )

        if page.row_count < size:
            out.stop_reason = "short_page"
            break

        if page_max is None or page_max <= current_min:
            # a full page of one sale date: re-querying from the same date returns the same page
            log.warning(
                "[%s SYNC] Pagination cannot progress past %s (full page of one sale date), stopping",
                market_code,
                current_min.isoformat(),
                extra={**ctx, "page": page_num},
            )
            out.stop_reason = "stalled"
            break

        current_min = page_max
        page_num += 1

    log.info(
        "[%s SYNC] Collected %d unique addresses for batch lookup",
        market_code,
        len(out.records),
        extra=ctx,
    )
    return out
