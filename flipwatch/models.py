# flipwatch/models.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


# -----------------------------
# Sync bookkeeping
# -----------------------------
class SyncState(Base):
    """One row per market (MSA); `last_sale_date` is the sync watermark."""

    __tablename__ = "sfr_sync_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    msa: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    last_sale_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    total_records_synced: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    last_sync_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Companies (flipping entities)
# -----------------------------
class Company(Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    contact_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # list[str] of counties the company has been observed in
    counties: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, default=datetime.utcnow)


# -----------------------------
# Core domain: Properties
# -----------------------------
class Property(Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sfr_property_id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True, index=True)

    buyer_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True
    )
    seller_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True
    )

    property_class_description: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    property_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    vacant: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    hoa: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    owner_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    purchase_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    listing_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # on-market|off-market
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default="in-renovation"
    )  # sold|on-market|in-renovation
    months_owned: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    msa: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, index=True)
    county: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, default=datetime.utcnow)

    transactions: Mapped[List["PropertyTransaction"]] = relationship(
        back_populates="property", cascade="all, delete-orphan"
    )


class PropertyTransaction(Base):
    """
    One deed/recording event. Natural key (property_id, transaction_date, transaction_type)
    is enforced by the sync engine before insert, not by a constraint.
    """

    __tablename__ = "property_transactions"
    __table_args__ = (
        Index("ix_property_transactions_natural_key", "property_id", "transaction_date", "transaction_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )

    company_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)
    buyer_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)
    seller_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)

    transaction_type: Mapped[str] = mapped_column(String(50), nullable=False)  # acquisition|sale|company-to-company
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)  # recording date

    sale_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    mtg_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    mtg_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    buyer_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    seller_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    property: Mapped["Property"] = relationship(back_populates="transactions")


# -----------------------------
# Property attribute tables (1:1)
# -----------------------------
class Address(Base):
    __tablename__ = "addresses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    formatted_street_address: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    street_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    street_suffix: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    street_pre_direction: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    street_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    street_post_direction: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    unit_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    unit_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    county: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    zip_plus_four_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    carrier_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    geocoding_accuracy: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    census_tract: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    census_block: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)


class Structure(Base):
    __tablename__ = "structures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    total_area_sq_ft: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    year_built: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    effective_year_built: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    beds_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    rooms_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    baths: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    basement_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    condition: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    construction_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    exterior_wall_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    fireplaces: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    heating_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    heating_fuel_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    parking_spaces_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    pool_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    quality: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    roof_material_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    roof_style_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    sewer_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    stories: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # "2" or "1 Story"
    units_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    water_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    living_area_sqft: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    ac_description: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    garage_description: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    building_class_description: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    sqft_description: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)


class Exemption(Base):
    __tablename__ = "exemptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    homeowner: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    veteran: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    disabled: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    widow: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    senior: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    school: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    religious: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    welfare: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    public: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    cemetery: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    hospital: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    library: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)


class Parcel(Base):
    __tablename__ = "parcels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    apn_original: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    fips_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    frontage_ft: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    depth_ft: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    area_acres: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    area_sq_ft: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    zoning: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    county_land_use_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    lot_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    subdivision: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    section_township_range: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    legal_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    state_land_use_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    building_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class SchoolDistrict(Base):
    __tablename__ = "school_districts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    school_tax_district_1: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    school_tax_district_2: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    school_tax_district_3: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    school_district_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)


class PreForeclosure(Base):
    __tablename__ = "pre_foreclosures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    flag: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    ind: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    doc_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    recording_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)


class LastSale(Base):
    __tablename__ = "last_sales"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    sale_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    recording_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    document_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    mtg_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    mtg_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    lender: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mtg_interest_rate: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    mtg_term_months: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)


class CurrentSale(Base):
    __tablename__ = "current_sales"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    doc_num: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    buyer_1: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    buyer_2: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    seller_1: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    seller_2: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# -----------------------------
# Property attribute tables (1:many, keyed by year/date)
# -----------------------------
class Assessment(Base):
    __tablename__ = "assessments"
    __table_args__ = (UniqueConstraint("property_id", "assessed_year", name="uq_assessments_property_year"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )

    assessed_year: Mapped[int] = mapped_column(Integer, nullable=False)
    land_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    improvement_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    assessed_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    market_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)


class TaxRecord(Base):
    __tablename__ = "tax_records"
    __table_args__ = (UniqueConstraint("property_id", "tax_year", name="uq_tax_records_property_year"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )

    tax_year: Mapped[int] = mapped_column(Integer, nullable=False)
    tax_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    tax_delinquent_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    tax_rate_code_area: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)


class PropertyValuation(Base):
    __tablename__ = "valuations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )

    value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    high: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    low: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    forecast_standard_deviation: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    valuation_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
