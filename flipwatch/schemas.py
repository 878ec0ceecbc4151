# flipwatch/schemas.py
from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from .domain.normalization import normalize_date_to_ymd


# -------------------- Loose scalar coercion (SFR payloads) --------------------

def _to_float(x: Any) -> Optional[float]:
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, (int, float)):
        return float(x)
    s = str(x).strip().replace("$", "").replace(",", "")
    if not s:
        return None
    try:
        return float(s)
    except ValueError:
        return None


def _to_int(x: Any) -> Optional[int]:
    f = _to_float(x)
    return int(f) if f is not None else None


def _to_bool(x: Any) -> Optional[bool]:
    if x is None:
        return None
    if isinstance(x, bool):
        return x
    s = str(x).strip().lower()
    if s in {"1", "true", "yes", "y", "t"}:
        return True
    if s in {"0", "false", "no", "n", "f"}:
        return False
    return None


def _to_str(x: Any) -> Optional[str]:
    if x is None:
        return None
    s = str(x).strip()
    return s or None


LooseFloat = Annotated[Optional[float], BeforeValidator(_to_float)]
LooseInt = Annotated[Optional[int], BeforeValidator(_to_int)]
LooseBool = Annotated[Optional[bool], BeforeValidator(_to_bool)]
LooseStr = Annotated[Optional[str], BeforeValidator(_to_str)]


class _SfrModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# -------------------- /buyers/market --------------------

class MarketRecord(_SfrModel):
    """One deed/transaction row from the market activity feed."""

    buyer_name: str = Field("", alias="buyerName")
    seller_name: str = Field("", alias="sellerName")
    buyer_ownership_code: LooseStr = Field(None, alias="buyerOwnershipCode")

    address: LooseStr = None
    city: LooseStr = None
    state: LooseStr = None

    # normalized to YYYY-MM-DD at the boundary
    sale_date: Optional[str] = Field(None, alias="saleDate")
    recording_date: Optional[str] = Field(None, alias="recordingDate")

    sale_value: LooseFloat = Field(None, alias="saleValue")
    sale_price: LooseFloat = Field(None, alias="salePrice")
    price: LooseFloat = None
    document_type: LooseStr = None

    @field_validator("buyer_name", "seller_name", mode="before")
    @classmethod
    def _names(cls, v: Any) -> str:
        return str(v).strip() if v is not None else ""

    @field_validator("sale_date", "recording_date", mode="before")
    @classmethod
    def _dates(cls, v: Any) -> Optional[str]:
        return normalize_date_to_ymd(v)

    def address_key(self) -> Optional[str]:
        if not self.address or not self.city or not self.state:
            return None
        return f"{self.address}, {self.city}, {self.state}"

    def price_value(self) -> Optional[float]:
        for v in (self.sale_value, self.sale_price, self.price):
            if v is not None:
                return v
        return None


# -------------------- /properties/batch --------------------

class AddressDetail(_SfrModel):
    formatted_street_address: LooseStr = None
    street_number: LooseStr = None
    street_suffix: LooseStr = None
    street_pre_direction: LooseStr = None
    street_name: LooseStr = None
    street_post_direction: LooseStr = None
    unit_type: LooseStr = None
    unit_number: LooseStr = None
    city: LooseStr = None
    state: LooseStr = None
    zip_code: LooseStr = None
    zip_plus_four_code: LooseStr = None
    carrier_code: LooseStr = None
    latitude: LooseFloat = None
    longitude: LooseFloat = None
    geocoding_accuracy: LooseStr = None
    census_tract: LooseStr = None
    census_block: LooseStr = None


class StructureDetail(_SfrModel):
    total_area_sq_ft: LooseInt = None
    year_built: LooseInt = None
    effective_year_built: LooseInt = None
    beds_count: LooseInt = None
    rooms_count: LooseInt = None
    baths: LooseFloat = None
    partial_baths_count: LooseInt = None
    basement_type: LooseStr = None
    condition: LooseStr = None
    construction_type: LooseStr = None
    exterior_wall_type: LooseStr = None
    fireplaces: LooseInt = None
    heating_type: LooseStr = None
    heating_fuel_type: LooseStr = None
    parking_spaces_count: LooseInt = None
    pool_type: LooseStr = None
    quality: LooseStr = None
    roof_material_type: LooseStr = None
    roof_style_type: LooseStr = None
    sewer_type: LooseStr = None
    stories: LooseStr = None  # 2 or "1 Story"
    units_count: LooseInt = None
    water_type: LooseStr = None
    living_area_sqft: LooseInt = None
    ac_description: LooseStr = None
    garage_description: LooseStr = None
    building_class_description: LooseStr = None
    sqft_description: LooseStr = None


class AssessmentDetail(_SfrModel):
    land_value: LooseFloat = None
    improvement_value: LooseFloat = None
    assessed_value: LooseFloat = None
    market_value: LooseFloat = None


class ExemptionDetail(_SfrModel):
    homeowner: LooseBool = None
    veteran: LooseBool = None
    disabled: LooseBool = None
    widow: LooseBool = None
    senior: LooseBool = None
    school: LooseBool = None
    religious: LooseBool = None
    welfare: LooseBool = None
    public: LooseBool = None
    cemetery: LooseBool = None
    hospital: LooseBool = None
    library: LooseBool = None


class ParcelDetail(_SfrModel):
    apn_original: LooseStr = None
    fips_code: LooseStr = None
    frontage_ft: LooseStr = None
    depth_ft: LooseStr = None
    area_acres: LooseStr = None  # zero-padded strings like "0000000175"
    area_sq_ft: LooseInt = None
    zoning: LooseStr = None
    county_land_use_code: LooseStr = None
    lot_number: LooseStr = None
    subdivision: LooseStr = None
    section_township_range: LooseStr = None
    legal_description: LooseStr = None
    state_land_use_code: LooseStr = None
    building_count: LooseInt = None


class ValuationDetail(_SfrModel):
    value: LooseFloat = None
    high: LooseFloat = None
    low: LooseFloat = None
    forecast_standard_deviation: LooseFloat = None
    date: LooseStr = None


class PreForeclosureDetail(_SfrModel):
    flag: LooseBool = None
    ind: LooseStr = None
    reason: LooseStr = None
    doc_type: LooseStr = None
    recording_date: LooseStr = None


class SaleDetail(_SfrModel):
    date: LooseStr = None
    recording_date: LooseStr = None
    price: LooseFloat = None
    document_type: LooseStr = None
    mtg_amount: LooseFloat = None
    mtg_type: LooseStr = None
    lender: LooseStr = None
    mtg_interest_rate: LooseStr = None  # " 00617"
    mtg_term_months: LooseStr = None


class CurrentSaleDetail(_SfrModel):
    doc_num: LooseStr = None
    buyer_1: LooseStr = Field(None, validation_alias=AliasChoices("buyer_1", "buyer1"))
    buyer_2: LooseStr = Field(None, validation_alias=AliasChoices("buyer_2", "buyer2"))
    seller_1: LooseStr = Field(None, validation_alias=AliasChoices("seller_1", "seller1"))
    seller_2: LooseStr = Field(None, validation_alias=AliasChoices("seller_2", "seller2"))


class OwnerDetail(_SfrModel):
    owner_occupied: LooseBool = None
    name: LooseStr = None
    second_name: LooseStr = None
    corporate_owner: LooseBool = None


class PropertyDetail(_SfrModel):
    property_id: LooseInt = None
    property_class_description: LooseStr = None
    property_type: LooseStr = None
    vacant: Any = None
    hoa: Any = None
    owner_type: LooseStr = None
    purchase_method: LooseStr = None
    listing_status: LooseStr = None
    months_owned: LooseInt = None
    msa: LooseStr = None
    county: LooseStr = None

    assessed_year: LooseInt = None
    market_year: LooseInt = None
    tax_year: LooseInt = None
    tax_amount: LooseFloat = None
    tax_delinquent_year: LooseInt = None
    tax_rate_code_area: LooseStr = None
    school_tax_district_1: LooseStr = None
    school_tax_district_2: LooseStr = None
    school_tax_district_3: LooseStr = None
    school_district_name: LooseStr = None

    address: Optional[AddressDetail] = None
    structure: Optional[StructureDetail] = None
    assessments: Optional[AssessmentDetail] = None
    exemptions: Optional[ExemptionDetail] = None
    parcel: Optional[ParcelDetail] = None
    valuation: Optional[ValuationDetail] = None
    pre_foreclosure: Optional[PreForeclosureDetail] = None
    last_sale: Optional[SaleDetail] = Field(None, validation_alias=AliasChoices("last_sale", "lastSale"))
    current_sale: Optional[CurrentSaleDetail] = Field(
        None, validation_alias=AliasChoices("current_sale", "currentSale")
    )
    owner: Optional[OwnerDetail] = None


class BatchItem(_SfrModel):
    address: LooseStr = None
    property: Optional[PropertyDetail] = None
    error: Any = None


# -------------------- Sync API (out) --------------------

class DateRangeOut(BaseModel):
    # "from" on the wire; from_ in Python
    from_: str = Field(alias="from")
    to: str
    model_config = ConfigDict(populate_by_name=True)


class SyncResultOut(BaseModel):
    success: bool
    market: str
    total_processed: int
    total_inserted: int
    total_updated: int
    date_range: DateRangeOut
    last_confirmed_sale_date: Optional[str] = None


class SyncStateOut(BaseModel):
    id: int
    msa: str
    last_sale_date: Optional[date] = None
    total_records_synced: int
    last_sync_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class MarketOut(BaseModel):
    code: str
    msa: str
    excluded_addresses: list[str]
