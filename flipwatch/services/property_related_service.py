# flipwatch/services/property_related_service.py
from __future__ import annotations

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from ..domain.property_data import ONE_TO_ONE_TABLES, PropertyRowCollector, PropertyRows
from ..models import (
    Address,
    Assessment,
    CurrentSale,
    Exemption,
    LastSale,
    Parcel,
    PreForeclosure,
    PropertyValuation,
    SchoolDistrict,
    Structure,
    TaxRecord,
)

ONE_TO_ONE_MODELS = {
    "address": Address,
    "structure": Structure,
    "exemption": Exemption,
    "parcel": Parcel,
    "school_district": SchoolDistrict,
    "pre_foreclosure": PreForeclosure,
    "last_sale": LastSale,
    "current_sale": CurrentSale,
}

# table -> (model, column that distinguishes rows of the same property)
ONE_TO_MANY_MODELS = {
    "assessment": (Assessment, "assessed_year"),
    "tax_record": (TaxRecord, "tax_year"),
    "valuation": (PropertyValuation, "valuation_date"),
}


def batch_insert_property_rows(db: Session, collector: PropertyRowCollector) -> int:
    """One INSERT per attribute table for every newly created property in the batch."""
    written = 0
    for name, rows in collector.rows.items():
        if not rows:
            continue
        model = ONE_TO_ONE_MODELS[name] if name in ONE_TO_ONE_MODELS else ONE_TO_MANY_MODELS[name][0]
        db.execute(insert(model), rows)
        written += len(rows)
    return written


def refresh_one_to_one_rows(db: Session, property_id: int, rows: PropertyRows) -> None:
    """Overwrite the existing property's 1:1 attribute rows; insert the ones it never had."""
    for name in ONE_TO_ONE_TABLES:
        row = getattr(rows, name)
        if row is None:
            continue
        model = ONE_TO_ONE_MODELS[name]
        values = {k: v for k, v in row.items() if k != "property_id"}

        exists = db.scalar(select(model.id).where(model.property_id == property_id))
        if exists is None:
            db.execute(insert(model), [row])
        else:
            db.execute(update(model).where(model.property_id == property_id).values(**values))


def add_one_to_many_rows_if_new(db: Session, property_id: int, rows: PropertyRows) -> int:
    """Append assessment/tax/valuation rows only when their year (or date) is not stored yet."""
    added = 0
    for name, (model, key_col) in ONE_TO_MANY_MODELS.items():
        row = getattr(rows, name)
        if row is None or row.get(key_col) is None:
            continue

        col = getattr(model, key_col)
        known = set(db.scalars(select(col).where(model.property_id == property_id)).all())
        if row[key_col] in known:
            continue

        db.execute(insert(model), [row])
        added += 1
    return added
