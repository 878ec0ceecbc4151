# flipwatch/services/market_sync.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..clients.sfr import SfrClient
from ..config import settings
from ..db import SessionLocal
from ..domain.markets import MARKETS, MarketConfig, get_market
from .company_cache import CompanyCache
from .market_collector import collect_market_records
from .property_batch_fetcher import iter_property_batches
from .property_upsert import RunProperties, upsert_batch
from .sync_state_service import effective_start_date, finalize_watermark, read_watermark

log = logging.getLogger(__name__)


@dataclass
class SyncMarketParams:
    market: str  # MSA string as the SFR API expects it
    market_code: str  # log tag, e.g. "SD"
    api_key: Optional[str] = None
    api_url: Optional[str] = None
    today: Optional[date] = None
    excluded_addresses: list[str] = field(default_factory=list)

    @classmethod
    def for_market(cls, m: MarketConfig, *, today: Optional[date] = None) -> "SyncMarketParams":
        return cls(
            market=m.msa,
            market_code=m.code,
            api_key=settings.sfr_api_key,
            api_url=settings.sfr_api_url,
            today=today,
            excluded_addresses=list(m.excluded_addresses),
        )


@dataclass
class SyncMarketResult:
    success: bool
    market: str
    total_processed: int
    total_inserted: int
    total_updated: int
    date_range: dict[str, str]
    last_confirmed_sale_date: Optional[str]

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "market": self.market,
            "total_processed": self.total_processed,
            "total_inserted": self.total_inserted,
            "total_updated": self.total_updated,
            "date_range": dict(self.date_range),
            "last_confirmed_sale_date": self.last_confirmed_sale_date,
        }


def _run(db: Session, client: SfrClient, p: SyncMarketParams) -> SyncMarketResult:
    code = p.market_code
    ctx = {"market": p.market, "market_code": code}
    today = p.today or date.today()

    state = read_watermark(db, p.market)
    state_id = state.id
    start = effective_start_date(state)

    log.info(
        "[%s SYNC] Starting sync for %s from sale_date %s to %s",
        code,
        p.market,
        start.isoformat(),
        today.isoformat(),
        extra=ctx,
    )

    cache = CompanyCache(db, market_code=code)
    cache.load()

    collected = collect_market_records(
        db,
        client,
        msa=p.market,
        market_code=code,
        state_id=state_id,
        start_date=start,
        today=today,
        excluded_addresses=p.excluded_addresses,
    )

    processed = inserted = updated = 0
    written = RunProperties()

    for batch in iter_property_batches(client, collected.addresses, market_code=code):
        try:
            outcome = upsert_batch(
                db, cache, batch, collected.records, msa=p.market, market_code=code, run=written
            )
            cache.commit()
        except OperationalError:
            cache.rollback()
            raise
        except SQLAlchemyError:
            cache.rollback()
            log.exception(
                "[%s SYNC] Storage error on batch %d/%d, batch skipped",
                code,
                batch.number,
                batch.total,
                extra={**ctx, "batch": batch.number},
            )
            continue

        written.merge(outcome)
        processed += outcome.processed
        inserted += outcome.inserted
        updated += outcome.updated

    final = finalize_watermark(db, state_id, processed, collected.boundary_date)
    last_confirmed = final.last_sale_date.isoformat() if final.last_sale_date else None
    to = collected.boundary_date.isoformat() if collected.boundary_date else today.isoformat()

    log.info(
        "[%s SYNC] Complete for %s: %d processed, %d inserted, %d updated",
        code,
        p.market,
        processed,
        inserted,
        updated,
        extra=ctx,
    )

    return SyncMarketResult(
        success=True,
        market=p.market,
        total_processed=processed,
        total_inserted=inserted,
        total_updated=updated,
        date_range={"from": start.isoformat(), "to": to},
        last_confirmed_sale_date=last_confirmed,
    )


def sync_market(
    params: SyncMarketParams,
    *,
    db: Optional[Session] = None,
    client: Optional[SfrClient] = None,
) -> SyncMarketResult:
    """
    Incremental sync of one market from its watermark to `params.today`.

    Feed, batch and per-item API failures are absorbed along the way; anything
    else is logged with the market attached and re-raised.
    """
    owns_db = db is None
    owns_client = client is None
    session = db if db is not None else SessionLocal()

    try:
        sfr = client if client is not None else SfrClient(api_key=params.api_key, api_url=params.api_url)
        try:
            return _run(session, sfr, params)
        finally:
            if owns_client:
                sfr.close()
    except Exception:
        log.exception(
            "[%s SYNC] Error syncing %s",
            params.market_code,
            params.market,
            extra={"market": params.market, "market_code": params.market_code},
        )
        session.rollback()
        raise
    finally:
        if owns_db:
            session.close()


def run_configured_market(code: str, *, today: Optional[date] = None, **kwargs) -> SyncMarketResult:
    return sync_market(SyncMarketParams.for_market(get_market(code), today=today), **kwargs)


def sync_all_markets(*, today: Optional[date] = None, **kwargs) -> dict[str, dict]:
    """
    Every configured market, one after another. A failing market is logged and
    reported as {"ok": False, ...}; the rest still run.
    """
    out: dict[str, dict] = {}
    log.info("[CRON] Starting sequential MSA sync jobs...")

    for m in MARKETS:
        try:
            result = run_configured_market(m.code, today=today, **kwargs)
            out[m.code] = {"ok": True, "result": result.to_dict()}
        except Exception as e:
            log.error(
                "[%s SYNC] Fatal error syncing %s: %s",
                m.code,
                m.msa,
                e,
                extra={"market": m.msa, "market_code": m.code},
            )
            out[m.code] = {"ok": False, "error": f"{type(e).__name__}: {e}"}

    log.info("[CRON] All MSA syncs complete")
    return out
