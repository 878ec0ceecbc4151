# tests/test_sync_state_watermark.py
from __future__ import annotations

from datetime import date

from flipwatch.models import SyncState
from flipwatch.services.sync_state_service import (
    advance_watermark,
    effective_start_date,
    finalize_watermark,
    read_watermark,
)

MSA = "Denver-Aurora-Centennial, CO"


def test_first_read_creates_row_with_default_start(db):
    row = read_watermark(db, MSA)
    assert row.id is not None
    assert row.last_sale_date is None
    assert row.total_records_synced == 0
    assert effective_start_date(row) == date(2025, 12, 3)

    # second read returns the same row
    assert read_watermark(db, MSA).id == row.id
    assert db.query(SyncState).count() == 1


def test_advance_sets_day_before_observed_max(db):
    row = read_watermark(db, MSA)
    assert advance_watermark(db, row.id, date(2026, 1, 10)) == date(2026, 1, 9)
    assert effective_start_date(db.get(SyncState, row.id)) == date(2026, 1, 9)


def test_watermark_never_moves_backwards(db):
    row = read_watermark(db, MSA)
    observed = [date(2026, 1, 10), date(2026, 1, 5), date(2026, 1, 20), date(2026, 1, 20), date(2026, 1, 2)]

    reads = []
    for d in observed:
        advance_watermark(db, row.id, d)
        reads.append(db.get(SyncState, row.id).last_sale_date)

    assert reads == sorted(reads)
    assert reads[-1] == date(2026, 1, 19)


def test_finalize_without_pages_keeps_date_and_adds_total(db):
    row = read_watermark(db, MSA)
    advance_watermark(db, row.id, date(2026, 1, 12))
    finalize_watermark(db, row.id, 7, None)

    out = finalize_watermark(db, row.id, 0, None)
    assert out.last_sale_date == date(2026, 1, 11)
    assert out.total_records_synced == 7


def test_finalize_with_boundary_is_forward_only(db):
    row = read_watermark(db, MSA)
    advance_watermark(db, row.id, date(2026, 1, 12))

    out = finalize_watermark(db, row.id, 3, date(2026, 1, 1))
    assert out.last_sale_date == date(2026, 1, 11)

    out = finalize_watermark(db, row.id, 2, date(2026, 1, 15))
    assert out.last_sale_date == date(2026, 1, 14)
    assert out.total_records_synced == 5
