# flipwatch/services/sync_state_service.py
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.normalization import parse_date
from ..models import SyncState

log = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.utcnow()


def default_start_date() -> date:
    d = parse_date(settings.sync_default_start_date)
    if d is None:
        raise ValueError(f"SYNC_DEFAULT_START_DATE is not a date: {settings.sync_default_start_date!r}")
    return d


def read_watermark(db: Session, msa: str) -> SyncState:
    """Load the market's watermark row, creating it (null date, zero total) on first sync."""
    row = db.scalar(select(SyncState).where(SyncState.msa == msa))
    if row is not None:
        return row

    row = SyncState(msa=msa, last_sale_date=None, total_records_synced=0, last_sync_at=_now(), created_at=_now())
    db.add(row)
    db.commit()
    db.refresh(row)
    log.info("Created sync state for %s", msa, extra={"market": msa})
    return row


def effective_start_date(row: SyncState) -> date:
    return row.last_sale_date or default_start_date()


def _forward_only(current: Optional[date], candidate: Optional[date]) -> Optional[date]:
    if candidate is None:
        return current
    if current is None or candidate > current:
        return candidate
    return current


def advance_watermark(db: Session, state_id: int, observed_max_sale_date: date) -> Optional[date]:
    """
    Persist `observed - 1 day` as the new watermark (the feed's date range is
    non-inclusive), never moving it backwards. Committed immediately so a crash
    later in the run resumes from here.
    """
    row = db.get(SyncState, state_id)
    if row is None:
        raise LookupError(f"sync state {state_id} not found")

    row.last_sale_date = _forward_only(row.last_sale_date, observed_max_sale_date - timedelta(days=1))
    row.last_sync_at = _now()
    db.add(row)
    db.commit()
    return row.last_sale_date


def finalize_watermark(
    db: Session,
    state_id: int,
    total_processed_this_run: int,
    boundary_date: Optional[date],
) -> SyncState:
    """
    End of run: add the run's processed count to the lifetime total. A run that
    fetched no page (boundary_date None) leaves the stored date as it was.
    """
    row = db.get(SyncState, state_id)
    if row is None:
        raise LookupError(f"sync state {state_id} not found")

    if boundary_date is not None:
        row.last_sale_date = _forward_only(row.last_sale_date, boundary_date - timedelta(days=1))
    row.total_records_synced = int(row.total_records_synced or 0) + int(total_processed_this_run)
    row.last_sync_at = _now()
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def list_states(db: Session) -> list[SyncState]:
    return list(db.scalars(select(SyncState).order_by(SyncState.msa)).all())
