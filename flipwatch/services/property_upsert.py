# flipwatch/services/property_upsert.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.classifier import PartyClassification, classify_parties
from ..domain.flip_status import TX_SALE, derive_listing_status, derive_status, derive_transaction_type
from ..domain.normalization import (
    company_key,
    normalize_company_name_for_storage,
    normalize_county_name,
    normalize_property_type,
    parse_date,
)
from ..domain.property_data import PropertyRowCollector, transform_all
from ..models import Property, PropertyTransaction
from ..schemas import MarketRecord, PropertyDetail
from .company_cache import CompanyCache
from .property_batch_fetcher import FetchedBatch
from .property_related_service import (
    add_one_to_many_rows_if_new,
    batch_insert_property_rows,
    refresh_one_to_one_rows,
)

log = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.utcnow()


@dataclass
class BatchOutcome:
    processed: int = 0  # properties first touched this run
    inserted: int = 0
    updated: int = 0
    transactions_inserted: int = 0
    # sfr_property_id -> recording date (YMD) whose attributes this batch wrote
    applied: dict[int, str] = field(default_factory=dict)


@dataclass
class RunProperties:
    """
    Properties already written earlier in the same run. Two spellings of one
    address can land in different fetch batches; the latest recording date
    still wins and each external id is counted once.

    Merge a batch only after it commits.
    """

    applied: dict[int, str] = field(default_factory=dict)

    def merge(self, outcome: BatchOutcome) -> None:
        self.applied.update(outcome.applied)


@dataclass
class _Candidate:
    """One raw feed record joined to the detail fetched for its address."""

    sfr_property_id: int
    detail: PropertyDetail
    record: MarketRecord
    county: Optional[str]
    parties: PartyClassification

    @property
    def recording_ymd(self) -> str:
        return self.record.recording_date or ""


def _join_candidates(batch: FetchedBatch, records: dict[str, list[MarketRecord]]) -> list[_Candidate]:
    by_lower = {k.lower(): k for k in records}
    out: list[_Candidate] = []

    for address, detail in batch.items:
        raw = records.get(address)
        if raw is None:
            # the API may echo the address with different casing
            key = by_lower.get(address.lower())
            raw = records.get(key) if key else None
        if not raw:
            continue

        if not detail.property_id:
            continue

        county = normalize_county_name(detail.county)
        for rec in raw:
            parties = classify_parties(rec.buyer_name, rec.seller_name, rec.buyer_ownership_code)
            if not parties.any_corporate:
                continue
            out.append(
                _Candidate(
                    sfr_property_id=int(detail.property_id),
                    detail=detail,
                    record=rec,
                    county=county,
                    parties=parties,
                )
            )
    return out


def _companies_wanted(candidates: list[_Candidate]) -> dict[str, set[str]]:
    wanted: dict[str, set[str]] = {}
    for c in candidates:
        sides = (
            (c.parties.buyer_corporate, c.record.buyer_name),
            (c.parties.seller_corporate, c.record.seller_name),
        )
        for is_corporate, name in sides:
            if not is_corporate:
                continue
            key = company_key(name)
            if not key:
                continue
            counties = wanted.setdefault(key, set())
            if c.county:
                counties.add(c.county)
    return wanted


def _party_ids(cache: CompanyCache, c: _Candidate) -> tuple[Optional[int], Optional[int]]:
    buyer_id = cache.id_for(c.record.buyer_name) if c.parties.buyer_corporate else None
    seller_id = cache.id_for(c.record.seller_name) if c.parties.seller_corporate else None
    return buyer_id, seller_id


def _property_values(c: _Candidate, buyer_id: Optional[int], seller_id: Optional[int], msa: str) -> dict:
    d = c.detail
    return {
        "sfr_property_id": c.sfr_property_id,
        "buyer_id": buyer_id,
        "seller_id": seller_id,
        "property_class_description": d.property_class_description,
        "property_type": normalize_property_type(d.property_type),
        "vacant": str(d.vacant) if d.vacant is not None else None,
        "hoa": str(d.hoa) if d.hoa is not None else None,
        "owner_type": d.owner_type,
        "purchase_method": d.purchase_method,
        "listing_status": derive_listing_status(d.listing_status),
        "status": derive_status(buyer_id, seller_id, d.listing_status),
        "months_owned": d.months_owned,
        "msa": d.msa or msa,
        "county": c.county,
    }


def _pick_authoritative(candidates: list[_Candidate]) -> dict[int, _Candidate]:
    """Per external id, the record with the latest recording date (first seen wins ties)."""
    best: dict[int, _Candidate] = {}
    for c in candidates:
        cur = best.get(c.sfr_property_id)
        if cur is None or c.recording_ymd > cur.recording_ymd:
            best[c.sfr_property_id] = c
    return best


def _upsert_properties(
    db: Session,
    cache: CompanyCache,
    authoritative: dict[int, _Candidate],
    *,
    msa: str,
    outcome: BatchOutcome,
    run: RunProperties,
) -> dict[int, int]:
    """Returns sfr_property_id -> properties.id for every property in the batch."""
    ids = list(authoritative.keys())
    existing = {
        p.sfr_property_id: p
        for p in db.scalars(select(Property).where(Property.sfr_property_id.in_(ids))).all()
    } if ids else {}

    id_map: dict[int, int] = {}
    created: list[tuple[Property, _Candidate]] = []

    for sfr_id, c in authoritative.items():
        prop = existing.get(sfr_id)
        earlier = run.applied.get(sfr_id)

        if earlier is not None and prop is not None and c.recording_ymd <= earlier:
            # an earlier batch already wrote a record at least as recent
            id_map[sfr_id] = prop.id
            continue

        if earlier is None:
            outcome.processed += 1

        buyer_id, seller_id = _party_ids(cache, c)
        values = _property_values(c, buyer_id, seller_id, msa)

        if prop is not None:
            for k, v in values.items():
                setattr(prop, k, v)
            prop.updated_at = _now()
            db.add(prop)

            rows = transform_all(prop.id, c.detail, c.county, c.record.recording_date)
            refresh_one_to_one_rows(db, prop.id, rows)
            add_one_to_many_rows_if_new(db, prop.id, rows)

            id_map[sfr_id] = prop.id
            if earlier is None:
                outcome.updated += 1
        else:
            prop = Property(**values, created_at=_now(), updated_at=_now())
            db.add(prop)
            created.append((prop, c))
        outcome.applied[sfr_id] = c.recording_ymd

    if created:
        db.flush()
        collector = PropertyRowCollector()
        for prop, c in created:
            id_map[c.sfr_property_id] = prop.id
            collector.collect(transform_all(prop.id, c.detail, c.county, c.record.recording_date))
        batch_insert_property_rows(db, collector)
        outcome.inserted += len(created)

    return id_map


def _transaction_candidate(
    cache: CompanyCache,
    c: _Candidate,
    property_id: int,
    *,
    market_code: str,
) -> Optional[PropertyTransaction]:
    tx_date: Optional[date] = parse_date(c.record.recording_date)
    if tx_date is None:
        return None

    tx_type = derive_transaction_type(c.parties.buyer_corporate, c.parties.seller_corporate)
    if tx_type is None:
        return None

    buyer_id, seller_id = _party_ids(cache, c)
    if buyer_id is None and seller_id is None:
        log.info(
            "[%s SYNC] Skipping transaction - no company IDs resolved for property %s",
            market_code,
            property_id,
            extra={"market_code": market_code, "property_id": property_id},
        )
        return None

    last_sale = c.detail.last_sale
    price = c.record.price_value()
    if price is None and last_sale is not None:
        price = last_sale.price

    notes = c.record.document_type
    if not notes and last_sale is not None and last_sale.document_type:
        notes = f"Document Type: {last_sale.document_type}"

    return PropertyTransaction(
        property_id=property_id,
        company_id=seller_id if tx_type == TX_SALE else buyer_id,
        buyer_id=buyer_id,
        seller_id=seller_id,
        transaction_type=tx_type,
        transaction_date=tx_date,
        sale_price=price,
        mtg_type=last_sale.mtg_type if last_sale is not None else None,
        mtg_amount=last_sale.mtg_amount if last_sale is not None else None,
        buyer_name=normalize_company_name_for_storage(c.record.buyer_name),
        seller_name=normalize_company_name_for_storage(c.record.seller_name),
        notes=notes,
        created_at=_now(),
    )


def _record_transactions(
    db: Session,
    cache: CompanyCache,
    candidates: list[_Candidate],
    id_map: dict[int, int],
    *,
    market_code: str,
) -> int:
    pending: list[PropertyTransaction] = []
    for c in candidates:
        property_id = id_map.get(c.sfr_property_id)
        if property_id is None:
            continue
        tx = _transaction_candidate(cache, c, property_id, market_code=market_code)
        if tx is not None:
            pending.append(tx)

    if not pending:
        return 0

    property_ids = sorted({t.property_id for t in pending})
    seen = {
        (pid, d, t)
        for pid, d, t in db.execute(
            select(
                PropertyTransaction.property_id,
                PropertyTransaction.transaction_date,
                PropertyTransaction.transaction_type,
            ).where(PropertyTransaction.property_id.in_(property_ids))
        ).all()
    }

    fresh: list[PropertyTransaction] = []
    for tx in pending:
        key = (tx.property_id, tx.transaction_date, tx.transaction_type)
        if key in seen:
            continue
        seen.add(key)
        fresh.append(tx)

    if fresh:
        db.add_all(fresh)
        db.flush()
        log.info(
            "[%s SYNC] Inserted %d property transactions",
            market_code,
            len(fresh),
            extra={"market_code": market_code},
        )
    return len(fresh)


def upsert_batch(
    db: Session,
    cache: CompanyCache,
    batch: FetchedBatch,
    records: dict[str, list[MarketRecord]],
    *,
    msa: str,
    market_code: str,
    run: Optional[RunProperties] = None,
) -> BatchOutcome:
    """
    Write one fetched batch: companies, properties (plus attribute rows) and
    transactions. Does not commit; the caller owns the batch transaction and
    merges the outcome into `run` once it commits.
    """
    outcome = BatchOutcome()
    run = run if run is not None else RunProperties()

    candidates = _join_candidates(batch, records)
    if not candidates:
        return outcome

    cache.resolve_many(_companies_wanted(candidates))

    id_map = _upsert_properties(db, cache, _pick_authoritative(candidates), msa=msa, outcome=outcome, run=run)
    outcome.transactions_inserted = _record_transactions(db, cache, candidates, id_map, market_code=market_code)
    return outcome
