# tests/test_market_sync_scenarios.py
from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from flipwatch.config import settings
from flipwatch.domain.normalization import company_key
from flipwatch.models import (
    Address,
    Assessment,
    Company,
    LastSale,
    Property,
    PropertyTransaction,
    SyncState,
)
from flipwatch.services import market_sync as market_sync_module
from flipwatch.services.market_sync import SyncMarketParams, SyncMarketResult, sync_all_markets, sync_market
from flipwatch.services.sync_state_service import advance_watermark, read_watermark

from sfr_fakes import market_record, property_detail

MSA = "San Diego-Chula Vista-Carlsbad, CA"
TODAY = date(2026, 1, 31)


def _params(**kw) -> SyncMarketParams:
    base = dict(market=MSA, market_code="SD", today=TODAY)
    base.update(kw)
    return SyncMarketParams(**base)


def _count(db, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


def _state(db) -> SyncState:
    db.expire_all()
    return db.scalar(select(SyncState).where(SyncState.msa == MSA))


def _scenario_a_page():
    return [
        market_record(buyer="ACME HOLDINGS LLC", seller="Jane Doe", address="1 A St", sale_date="2026-01-10",
                      recording_date="2026-01-11", saleValue=500000, document_type="Grant Deed"),
        market_record(buyer="John Roe", seller="Mary Poe", address="2 B St", sale_date="2026-01-11"),
        market_record(buyer="Blue Capital, LLC.", seller="Sam Loe", address="3 C St", sale_date="2026-01-12"),
    ]


def _scenario_a_details(fake_api):
    fake_api.details["1 A St, San Diego, CA"] = property_detail(1001, street="1 A STREET")
    fake_api.details["2 B St, San Diego, CA"] = property_detail(1002, street="2 B STREET")
    fake_api.details["3 C St, San Diego, CA"] = property_detail(1003, street="3 C STREET")


def test_scenario_a_first_sync(db, fake_api, sfr_client):
    fake_api.market_pages = [_scenario_a_page()]
    _scenario_a_details(fake_api)

    result = sync_market(_params(), db=db, client=sfr_client)

    assert result.success is True
    assert result.market == MSA
    assert (result.total_processed, result.total_inserted, result.total_updated) == (2, 2, 0)
    assert result.date_range == {"from": "2025-12-03", "to": "2026-01-12"}
    assert result.last_confirmed_sale_date == "2026-01-11"
    assert fake_api.market_calls[0]["sales_date_min"] == "2025-12-03"

    # the individual-to-individual address never reaches the detail fetch
    assert fake_api.batch_calls == [["1 A St, San Diego, CA", "3 C St, San Diego, CA"]]

    state = _state(db)
    assert state.last_sale_date == date(2026, 1, 11)
    assert state.total_records_synced == 2

    names = sorted(db.scalars(select(Company.company_name)).all())
    assert names == ["Acme Holdings LLC", "Blue Capital LLC"]

    props = db.scalars(select(Property).order_by(Property.sfr_property_id)).all()
    assert [p.sfr_property_id for p in props] == [1001, 1003]
    assert all(p.status == "in-renovation" and p.listing_status == "off-market" for p in props)
    assert all(p.buyer_id is not None and p.seller_id is None for p in props)
    assert props[0].county == "San Diego"

    txs = db.scalars(select(PropertyTransaction).order_by(PropertyTransaction.id)).all()
    assert [t.transaction_type for t in txs] == ["acquisition", "acquisition"]
    first = txs[0]
    assert first.transaction_date == date(2026, 1, 11)
    assert first.sale_price == 500000.0
    assert first.notes == "Grant Deed"
    assert first.company_id == first.buyer_id
    assert first.buyer_name == "Acme Holdings LLC"
    assert first.seller_name == "Jane Doe"
    assert first.mtg_amount == 520000.0
    # no price or document type on the feed row: fall back to the detail's last sale
    assert txs[1].sale_price == 650000.0
    assert txs[1].notes == "Document Type: Grant Deed"

    assert _count(db, Address) == 2
    assert _count(db, Assessment) == 2


def test_scenario_b_nothing_new(db, fake_api, sfr_client):
    row = read_watermark(db, MSA)
    advance_watermark(db, row.id, date(2026, 1, 12))

    result = sync_market(_params(), db=db, client=sfr_client)

    assert result.success is True
    assert result.total_processed == 0
    assert fake_api.market_calls[0]["sales_date_min"] == "2026-01-11"
    assert fake_api.batch_calls == []
    assert result.last_confirmed_sale_date == "2026-01-11"
    assert result.date_range == {"from": "2026-01-11", "to": "2026-01-31"}

    state = _state(db)
    assert state.last_sale_date == date(2026, 1, 11)
    assert state.total_records_synced == 0


def test_scenario_c_acquisition_then_resale(db, fake_api, sfr_client):
    address = "777 Flip Ln"
    fake_api.market_pages = [
        [
            market_record(buyer="CompanyX LLC", seller="Jane Doe", address=address,
                          sale_date="2026-01-20", recording_date="2026-01-20"),
            market_record(buyer="John Roe", seller="COMPANYX, LLC", address=address,
                          sale_date="2026-01-20", recording_date="2026-01-26"),
        ]
    ]
    fake_api.details[f"{address}, San Diego, CA"] = property_detail(777, listing_status="On Market")

    result = sync_market(_params(), db=db, client=sfr_client)

    assert (result.total_processed, result.total_inserted) == (1, 1)
    assert _count(db, Company) == 1
    company_id = db.scalar(select(Company.id))

    prop = db.scalar(select(Property).where(Property.sfr_property_id == 777))
    assert prop.status == "sold"
    assert prop.buyer_id is None
    assert prop.seller_id == company_id

    last_sale = db.scalar(select(LastSale).where(LastSale.property_id == prop.id))
    assert last_sale.recording_date == date(2026, 1, 26)

    txs = db.scalars(select(PropertyTransaction).order_by(PropertyTransaction.transaction_date)).all()
    assert [(t.transaction_type, t.transaction_date) for t in txs] == [
        ("acquisition", date(2026, 1, 20)),
        ("sale", date(2026, 1, 26)),
    ]
    assert all(t.company_id == company_id for t in txs)
    assert txs[1].seller_id == company_id and txs[1].buyer_id is None


def test_scenario_d_failed_batch_is_skipped(db, fake_api, sfr_client, monkeypatch):
    monkeypatch.setattr(settings, "sync_batch_fetch_size", 2)
    fake_api.market_pages = [
        [
            market_record(buyer="ACME LLC", seller="Jane Doe", address="1 A St", sale_date="2026-01-05"),
            market_record(buyer="ACME LLC", seller="Jane Doe", address="2 B St", sale_date="2026-01-06"),
            market_record(buyer="ACME LLC", seller="Jane Doe", address="3 C St", sale_date="2026-01-07"),
        ]
    ]
    for i, street in enumerate(["1 A St", "2 B St", "3 C St"], start=1):
        fake_api.details[f"{street}, San Diego, CA"] = property_detail(i)
    fake_api.failing_batches = {1}

    result = sync_market(_params(), db=db, client=sfr_client)

    assert result.success is True
    assert len(fake_api.batch_calls) == 2
    assert (result.total_processed, result.total_inserted) == (1, 1)
    assert db.scalars(select(Property.sfr_property_id)).all() == [3]


def test_scenario_e_excluded_address_never_fetched(db, fake_api, sfr_client):
    fake_api.market_pages = [
        [market_record(buyer="ACME LLC", seller="Jane Doe", address="123 MAIN ST", sale_date="2026-01-05")]
    ]
    fake_api.details["123 MAIN ST, San Diego, CA"] = property_detail(123)

    result = sync_market(_params(excluded_addresses=["123 Main St"]), db=db, client=sfr_client)

    assert result.total_processed == 0
    assert fake_api.batch_calls == []
    assert _count(db, Property) == 0
    # the page was still consumed
    assert _state(db).last_sale_date == date(2026, 1, 4)


def test_rerunning_the_same_window_records_no_duplicate_transactions(db, fake_api, sfr_client):
    page = _scenario_a_page()
    fake_api.market_pages = [page, page]
    _scenario_a_details(fake_api)

    first = sync_market(_params(), db=db, client=sfr_client)
    second = sync_market(_params(), db=db, client=sfr_client)

    assert (first.total_inserted, first.total_updated) == (2, 0)
    assert (second.total_processed, second.total_inserted, second.total_updated) == (2, 0, 2)
    assert fake_api.market_calls[1]["sales_date_min"] == "2026-01-11"

    assert _count(db, Property) == 2
    assert _count(db, PropertyTransaction) == 2
    assert _count(db, Company) == 2
    assert _count(db, Assessment) == 2  # same assessed_year is not re-added
    assert _state(db).total_records_synced == 4


def test_one_property_per_external_id_latest_recording_wins(db, fake_api, sfr_client):
    fake_api.market_pages = [
        [
            market_record(buyer="ACME LLC", seller="Jane Doe", address="55 Bay Rd",
                          sale_date="2026-01-08", recording_date="2026-01-15"),
            market_record(buyer="ACME LLC", seller="Jane Doe", address="55 Bay Road",
                          sale_date="2026-01-05", recording_date="2026-01-09"),
        ]
    ]
    fake_api.details["55 Bay Rd, San Diego, CA"] = property_detail(555, listing_status="On Market")
    fake_api.details["55 Bay Road, San Diego, CA"] = property_detail(555, listing_status="Off Market")

    result = sync_market(_params(), db=db, client=sfr_client)

    assert result.total_processed == 1
    assert _count(db, Property) == 1
    prop = db.scalar(select(Property))
    assert prop.status == "on-market"
    assert prop.listing_status == "on-market"
    assert _count(db, PropertyTransaction) == 2


def test_existing_property_is_updated_and_gains_new_assessment_year(db, fake_api, sfr_client):
    fake_api.market_pages = [
        [market_record(buyer="ACME LLC", seller="Jane Doe", address="8 Pine St", sale_date="2026-01-05")],
        [market_record(buyer="Jane Roe", seller="ACME LLC", address="8 Pine St", sale_date="2026-01-20")],
    ]
    fake_api.details["8 Pine St, San Diego, CA"] = property_detail(808, assessed_year=2025)
    sync_market(_params(), db=db, client=sfr_client)

    fake_api.details["8 Pine St, San Diego, CA"] = property_detail(808, assessed_year=2026, listing_status="On Market")
    result = sync_market(_params(), db=db, client=sfr_client)

    assert (result.total_inserted, result.total_updated) == (0, 1)
    prop = db.scalar(select(Property))
    db.refresh(prop)
    assert prop.status == "sold"
    years = sorted(db.scalars(select(Assessment.assessed_year)).all())
    assert years == [2025, 2026]
    assert _count(db, Address) == 1
    assert [t.transaction_type for t in db.scalars(select(PropertyTransaction).order_by(PropertyTransaction.id))] == [
        "acquisition",
        "sale",
    ]


def test_spellings_in_separate_batches_keep_the_latest_recording(db, fake_api, sfr_client, monkeypatch):
    monkeypatch.setattr(settings, "sync_batch_fetch_size", 1)
    fake_api.market_pages = [
        [
            market_record(buyer="Jane Roe", seller="ACME LLC", address="55 Bay Rd",
                          sale_date="2026-01-12", recording_date="2026-01-15"),
            market_record(buyer="ACME LLC", seller="Jane Doe", address="55 BAY RD",
                          sale_date="2026-01-06", recording_date="2026-01-09"),
        ]
    ]
    fake_api.details["55 Bay Rd, San Diego, CA"] = property_detail(555)
    fake_api.details["55 BAY RD, San Diego, CA"] = property_detail(555)

    result = sync_market(_params(), db=db, client=sfr_client)

    assert len(fake_api.batch_calls) == 2
    assert (result.total_processed, result.total_inserted, result.total_updated) == (1, 1, 0)
    assert _count(db, Property) == 1
    prop = db.scalar(select(Property))
    db.refresh(prop)
    assert prop.status == "sold"
    assert prop.buyer_id is None and prop.seller_id is not None

    txs = db.scalars(select(PropertyTransaction).order_by(PropertyTransaction.transaction_date)).all()
    assert [(t.transaction_type, t.transaction_date) for t in txs] == [
        ("acquisition", date(2026, 1, 9)),
        ("sale", date(2026, 1, 15)),
    ]
    assert _state(db).total_records_synced == 1


def test_newer_spelling_in_a_later_batch_overwrites_the_property(db, fake_api, sfr_client, monkeypatch):
    monkeypatch.setattr(settings, "sync_batch_fetch_size", 1)
    fake_api.market_pages = [
        [
            market_record(buyer="ACME LLC", seller="Jane Doe", address="55 BAY RD",
                          sale_date="2026-01-06", recording_date="2026-01-09"),
            market_record(buyer="Jane Roe", seller="ACME LLC", address="55 Bay Rd",
                          sale_date="2026-01-12", recording_date="2026-01-15"),
        ]
    ]
    fake_api.details["55 BAY RD, San Diego, CA"] = property_detail(555)
    fake_api.details["55 Bay Rd, San Diego, CA"] = property_detail(555)

    result = sync_market(_params(), db=db, client=sfr_client)

    assert (result.total_processed, result.total_inserted, result.total_updated) == (1, 1, 0)
    prop = db.scalar(select(Property))
    db.refresh(prop)
    assert prop.status == "sold"
    last_sale = db.scalar(select(LastSale).where(LastSale.property_id == prop.id))
    assert last_sale is not None
    assert _count(db, PropertyTransaction) == 2


def test_storage_error_skips_only_that_batch(db, fake_api, sfr_client, monkeypatch):
    monkeypatch.setattr(settings, "sync_batch_fetch_size", 1)
    fake_api.market_pages = [
        [
            market_record(buyer="First Wave LLC", seller="Jane Doe", address="1 A St", sale_date="2026-01-05"),
            market_record(buyer="Second Wave LLC", seller="Jane Doe", address="2 B St", sale_date="2026-01-06"),
        ]
    ]
    fake_api.details["1 A St, San Diego, CA"] = property_detail(1)
    fake_api.details["2 B St, San Diego, CA"] = property_detail(2)

    real_upsert = market_sync_module.upsert_batch
    seen = {}

    def failing_first_batch(db_, cache, batch, records, **kw):
        seen["cache"] = cache
        outcome = real_upsert(db_, cache, batch, records, **kw)
        if batch.number == 1:
            raise SQLAlchemyError("disk full")
        return outcome

    monkeypatch.setattr(market_sync_module, "upsert_batch", failing_first_batch)

    result = sync_market(_params(), db=db, client=sfr_client)

    assert result.success is True
    assert (result.total_processed, result.total_inserted) == (1, 1)
    assert db.scalars(select(Property.sfr_property_id)).all() == [2]
    assert company_key("First Wave LLC") not in seen["cache"]
    assert company_key("Second Wave LLC") in seen["cache"]
    assert _state(db).total_records_synced == 1


def test_false_flags_are_stored_as_text(db, fake_api, sfr_client):
    fake_api.market_pages = [
        [market_record(buyer="ACME LLC", seller="Jane Doe", address="9 Elm Ave", sale_date="2026-01-05")]
    ]
    fake_api.details["9 Elm Ave, San Diego, CA"] = property_detail(909, hoa=False, vacant=False)

    sync_market(_params(), db=db, client=sfr_client)

    prop = db.scalar(select(Property))
    assert prop.hoa == "False"
    assert prop.vacant == "False"


def test_unexpected_error_is_reraised(db):
    class Exploding:
        def fetch_market_page(self, **_kw):
            raise RuntimeError("boom")

        def close(self):
            pass

    with pytest.raises(RuntimeError):
        sync_market(_params(), db=db, client=Exploding())


def test_sync_all_markets_keeps_going_after_a_failure(monkeypatch):
    calls = []

    def fake_run(code, *, today=None, **_kw):
        calls.append(code)
        if code == "LA":
            raise RuntimeError("LA is down")
        return SyncMarketResult(True, code, 0, 0, 0, {"from": "2025-12-03", "to": "2026-01-31"}, None)

    monkeypatch.setattr("flipwatch.services.market_sync.run_configured_market", fake_run)
    out = sync_all_markets(today=TODAY)

    assert calls == ["SD", "LA", "DEN", "SF"]
    assert out["LA"]["ok"] is False
    assert "LA is down" in out["LA"]["error"]
    assert all(out[c]["ok"] for c in ("SD", "DEN", "SF"))
