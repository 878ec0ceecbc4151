# flipwatch/domain/property_data.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..schemas import PropertyDetail
from .normalization import (
    normalize_address,
    normalize_company_name_for_storage,
    normalize_subdivision,
    normalize_to_title_case,
    parse_date,
)

# -----------------------------------------------------------------------------
# SFR property detail -> attribute table rows
#
# Every transform returns a plain dict keyed by model attribute name (including
# property_id) or None when the payload has nothing for that table.
# -----------------------------------------------------------------------------

Row = dict[str, Any]


def transform_address(property_id: int, detail: PropertyDetail, county: Optional[str]) -> Optional[Row]:
    a = detail.address
    if a is None:
        return None
    return {
        "property_id": property_id,
        "formatted_street_address": normalize_address(a.formatted_street_address),
        "street_number": a.street_number,
        "street_suffix": a.street_suffix,
        "street_pre_direction": a.street_pre_direction,
        "street_name": normalize_to_title_case(a.street_name),
        "street_post_direction": a.street_post_direction,
        "unit_type": a.unit_type,
        "unit_number": a.unit_number,
        "city": normalize_to_title_case(a.city),
        "county": county,
        "state": a.state,
        "zip_code": a.zip_code,
        "zip_plus_four_code": a.zip_plus_four_code,
        "carrier_code": a.carrier_code,
        "latitude": a.latitude,
        "longitude": a.longitude,
        "geocoding_accuracy": a.geocoding_accuracy,
        "census_tract": a.census_tract,
        "census_block": a.census_block,
    }


def transform_structure(property_id: int, detail: PropertyDetail) -> Optional[Row]:
    s = detail.structure
    if s is None:
        return None
    row = s.model_dump(exclude={"partial_baths_count"})
    row["property_id"] = property_id
    return row


def transform_assessment(property_id: int, detail: PropertyDetail) -> Optional[Row]:
    if detail.assessments is None or not detail.assessed_year:
        return None
    a = detail.assessments
    return {
        "property_id": property_id,
        "assessed_year": detail.assessed_year,
        "land_value": a.land_value,
        "improvement_value": a.improvement_value,
        "assessed_value": a.assessed_value,
        "market_value": a.market_value,
    }


def transform_exemption(property_id: int, detail: PropertyDetail) -> Optional[Row]:
    if detail.exemptions is None:
        return None
    row = detail.exemptions.model_dump()
    row["property_id"] = property_id
    return row


def transform_parcel(property_id: int, detail: PropertyDetail) -> Optional[Row]:
    p = detail.parcel
    if p is None:
        return None
    row = p.model_dump()
    row["subdivision"] = normalize_subdivision(p.subdivision)
    row["property_id"] = property_id
    return row


def transform_school_district(property_id: int, detail: PropertyDetail) -> Optional[Row]:
    if not detail.school_tax_district_1 and not detail.school_district_name:
        return None
    return {
        "property_id": property_id,
        "school_tax_district_1": normalize_to_title_case(detail.school_tax_district_1),
        "school_tax_district_2": normalize_to_title_case(detail.school_tax_district_2),
        "school_tax_district_3": normalize_to_title_case(detail.school_tax_district_3),
        "school_district_name": detail.school_district_name,
    }


def transform_tax_record(property_id: int, detail: PropertyDetail) -> Optional[Row]:
    if not detail.tax_year:
        return None
    return {
        "property_id": property_id,
        "tax_year": detail.tax_year,
        "tax_amount": detail.tax_amount,
        "tax_delinquent_year": detail.tax_delinquent_year,
        "tax_rate_code_area": detail.tax_rate_code_area,
    }


def transform_valuation(property_id: int, detail: PropertyDetail) -> Optional[Row]:
    v = detail.valuation
    if v is None:
        return None
    return {
        "property_id": property_id,
        "value": v.value,
        "high": v.high,
        "low": v.low,
        "forecast_standard_deviation": v.forecast_standard_deviation,
        "valuation_date": parse_date(v.date),
    }


def transform_pre_foreclosure(property_id: int, detail: PropertyDetail) -> Optional[Row]:
    pf = detail.pre_foreclosure
    if pf is None:
        return None
    return {
        "property_id": property_id,
        "flag": pf.flag,
        "ind": pf.ind,
        "reason": pf.reason,
        "doc_type": pf.doc_type,
        "recording_date": parse_date(pf.recording_date),
    }


def transform_last_sale(
    property_id: int,
    detail: PropertyDetail,
    recording_date_override: Optional[str] = None,
) -> Optional[Row]:
    """
    During sync the recording date from the feed record wins over the one in
    the detail payload (the detail can lag behind the deed feed).
    """
    ls = detail.last_sale
    if ls is None:
        return None
    recording = recording_date_override if recording_date_override is not None else ls.recording_date
    return {
        "property_id": property_id,
        "sale_date": parse_date(ls.date),
        "recording_date": parse_date(recording),
        "price": ls.price,
        "document_type": ls.document_type,
        "mtg_amount": ls.mtg_amount,
        "mtg_type": ls.mtg_type,
        "lender": normalize_company_name_for_storage(ls.lender),
        "mtg_interest_rate": ls.mtg_interest_rate,
        "mtg_term_months": ls.mtg_term_months,
    }


def transform_current_sale(property_id: int, detail: PropertyDetail) -> Optional[Row]:
    cs = detail.current_sale
    if cs is None:
        return None
    return {
        "property_id": property_id,
        "doc_num": cs.doc_num,
        "buyer_1": normalize_company_name_for_storage(cs.buyer_1),
        "buyer_2": normalize_company_name_for_storage(cs.buyer_2),
        "seller_1": normalize_company_name_for_storage(cs.seller_1),
        "seller_2": normalize_company_name_for_storage(cs.seller_2),
    }


# -----------------------------------------------------------------------------
# Aggregate
# -----------------------------------------------------------------------------

ONE_TO_ONE_TABLES = (
    "address",
    "structure",
    "exemption",
    "parcel",
    "school_district",
    "pre_foreclosure",
    "last_sale",
    "current_sale",
)
ONE_TO_MANY_TABLES = ("assessment", "tax_record", "valuation")


@dataclass
class PropertyRows:
    address: Optional[Row] = None
    structure: Optional[Row] = None
    assessment: Optional[Row] = None
    exemption: Optional[Row] = None
    parcel: Optional[Row] = None
    school_district: Optional[Row] = None
    tax_record: Optional[Row] = None
    valuation: Optional[Row] = None
    pre_foreclosure: Optional[Row] = None
    last_sale: Optional[Row] = None
    current_sale: Optional[Row] = None


def transform_all(
    property_id: int,
    detail: PropertyDetail,
    county: Optional[str],
    recording_date_override: Optional[str] = None,
) -> PropertyRows:
    return PropertyRows(
        address=transform_address(property_id, detail, county),
        structure=transform_structure(property_id, detail),
        assessment=transform_assessment(property_id, detail),
        exemption=transform_exemption(property_id, detail),
        parcel=transform_parcel(property_id, detail),
        school_district=transform_school_district(property_id, detail),
        tax_record=transform_tax_record(property_id, detail),
        valuation=transform_valuation(property_id, detail),
        pre_foreclosure=transform_pre_foreclosure(property_id, detail),
        last_sale=transform_last_sale(property_id, detail, recording_date_override),
        current_sale=transform_current_sale(property_id, detail),
    )


@dataclass
class PropertyRowCollector:
    """Accumulates attribute rows for newly inserted properties so each table gets one bulk insert."""

    rows: dict[str, list[Row]] = field(
        default_factory=lambda: {name: [] for name in ONE_TO_ONE_TABLES + ONE_TO_MANY_TABLES}
    )

    def collect(self, pr: PropertyRows) -> None:
        for name in self.rows:
            row = getattr(pr, name)
            if row is not None:
                self.rows[name].append(row)

    def __len__(self) -> int:
        return sum(len(v) for v in self.rows.values())
