"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-02-02
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _property_fk():
    return sa.Column(
        "property_id",
        sa.Integer(),
        sa.ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
    )


def _company_fk(name: str):
    return sa.Column(name, sa.Integer(), sa.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)


def upgrade():
    op.create_table(
        "sfr_sync_state",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("msa", sa.String(length=255), nullable=False),
        sa.Column("last_sale_date", sa.Date(), nullable=True),
        sa.Column("total_records_synced", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_sync_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("msa", name="uq_sfr_sync_state_msa"),
    )
    op.create_index("ix_sfr_sync_state_msa", "sfr_sync_state", ["msa"])

    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_name", sa.Text(), nullable=False),
        sa.Column("contact_name", sa.Text(), nullable=True),
        sa.Column("contact_email", sa.Text(), nullable=True),
        sa.Column("phone_number", sa.String(length=20), nullable=True),
        sa.Column("counties", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("company_name", name="uq_companies_company_name"),
    )

    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sfr_property_id", sa.BigInteger(), nullable=False),
        _company_fk("buyer_id"),
        _company_fk("seller_id"),
        sa.Column("property_class_description", sa.String(length=100), nullable=True),
        sa.Column("property_type", sa.String(length=100), nullable=True),
        sa.Column("vacant", sa.String(length=10), nullable=True),
        sa.Column("hoa", sa.String(length=10), nullable=True),
        sa.Column("owner_type", sa.String(length=50), nullable=True),
        sa.Column("purchase_method", sa.String(length=50), nullable=True),
        sa.Column("listing_status", sa.String(length=50), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="in-renovation"),
        sa.Column("months_owned", sa.Integer(), nullable=True),
        sa.Column("msa", sa.String(length=200), nullable=True),
        sa.Column("county", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_properties_sfr_property_id", "properties", ["sfr_property_id"], unique=True)
    op.create_index("ix_properties_buyer_id", "properties", ["buyer_id"])
    op.create_index("ix_properties_seller_id", "properties", ["seller_id"])
    op.create_index("ix_properties_msa", "properties", ["msa"])

    op.create_table(
        "property_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_fk(),
        _company_fk("company_id"),
        _company_fk("buyer_id"),
        _company_fk("seller_id"),
        sa.Column("transaction_type", sa.String(length=50), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("sale_price", sa.Float(), nullable=True),
        sa.Column("mtg_type", sa.String(length=50), nullable=True),
        sa.Column("mtg_amount", sa.Float(), nullable=True),
        sa.Column("buyer_name", sa.Text(), nullable=True),
        sa.Column("seller_name", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_property_transactions_property_id", "property_transactions", ["property_id"])
    op.create_index(
        "ix_property_transactions_natural_key",
        "property_transactions",
        ["property_id", "transaction_date", "transaction_type"],
    )

    # ---- 1:1 attribute tables ----
    op.create_table(
        "addresses",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_fk(),
        sa.Column("formatted_street_address", sa.String(length=200), nullable=True),
        sa.Column("street_number", sa.String(length=20), nullable=True),
        sa.Column("street_suffix", sa.String(length=20), nullable=True),
        sa.Column("street_pre_direction", sa.String(length=10), nullable=True),
        sa.Column("street_name", sa.String(length=100), nullable=True),
        sa.Column("street_post_direction", sa.String(length=10), nullable=True),
        sa.Column("unit_type", sa.String(length=20), nullable=True),
        sa.Column("unit_number", sa.String(length=20), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("county", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=2), nullable=True),
        sa.Column("zip_code", sa.String(length=10), nullable=True),
        sa.Column("zip_plus_four_code", sa.String(length=10), nullable=True),
        sa.Column("carrier_code", sa.String(length=20), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("geocoding_accuracy", sa.String(length=200), nullable=True),
        sa.Column("census_tract", sa.String(length=20), nullable=True),
        sa.Column("census_block", sa.String(length=20), nullable=True),
        sa.UniqueConstraint("property_id", name="uq_addresses_property"),
    )

    op.create_table(
        "structures",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_fk(),
        sa.Column("total_area_sq_ft", sa.Integer(), nullable=True),
        sa.Column("year_built", sa.Integer(), nullable=True),
        sa.Column("effective_year_built", sa.Integer(), nullable=True),
        sa.Column("beds_count", sa.Integer(), nullable=True),
        sa.Column("rooms_count", sa.Integer(), nullable=True),
        sa.Column("baths", sa.Float(), nullable=True),
        sa.Column("basement_type", sa.String(length=50), nullable=True),
        sa.Column("condition", sa.String(length=50), nullable=True),
        sa.Column("construction_type", sa.String(length=50), nullable=True),
        sa.Column("exterior_wall_type", sa.String(length=50), nullable=True),
        sa.Column("fireplaces", sa.Integer(), nullable=True),
        sa.Column("heating_type", sa.String(length=50), nullable=True),
        sa.Column("heating_fuel_type", sa.String(length=50), nullable=True),
        sa.Column("parking_spaces_count", sa.Integer(), nullable=True),
        sa.Column("pool_type", sa.String(length=50), nullable=True),
        sa.Column("quality", sa.String(length=10), nullable=True),
        sa.Column("roof_material_type", sa.String(length=50), nullable=True),
        sa.Column("roof_style_type", sa.String(length=50), nullable=True),
        sa.Column("sewer_type", sa.String(length=50), nullable=True),
        sa.Column("stories", sa.String(length=50), nullable=True),
        sa.Column("units_count", sa.Integer(), nullable=True),
        sa.Column("water_type", sa.String(length=50), nullable=True),
        sa.Column("living_area_sqft", sa.Integer(), nullable=True),
        sa.Column("ac_description", sa.String(length=100), nullable=True),
        sa.Column("garage_description", sa.String(length=100), nullable=True),
        sa.Column("building_class_description", sa.String(length=100), nullable=True),
        sa.Column("sqft_description", sa.String(length=100), nullable=True),
        sa.UniqueConstraint("property_id", name="uq_structures_property"),
    )

    exemption_flags = [
        "homeowner",
        "veteran",
        "disabled",
        "widow",
        "senior",
        "school",
        "religious",
        "welfare",
        "public",
        "cemetery",
        "hospital",
        "library",
    ]
    op.create_table(
        "exemptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_fk(),
        *[sa.Column(name, sa.Boolean(), nullable=True) for name in exemption_flags],
        sa.UniqueConstraint("property_id", name="uq_exemptions_property"),
    )

    op.create_table(
        "parcels",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_fk(),
        sa.Column("apn_original", sa.String(length=50), nullable=True),
        sa.Column("fips_code", sa.String(length=10), nullable=True),
        sa.Column("frontage_ft", sa.String(length=20), nullable=True),
        sa.Column("depth_ft", sa.String(length=20), nullable=True),
        sa.Column("area_acres", sa.String(length=20), nullable=True),
        sa.Column("area_sq_ft", sa.Integer(), nullable=True),
        sa.Column("zoning", sa.String(length=50), nullable=True),
        sa.Column("county_land_use_code", sa.String(length=20), nullable=True),
        sa.Column("lot_number", sa.String(length=50), nullable=True),
        sa.Column("subdivision", sa.String(length=200), nullable=True),
        sa.Column("section_township_range", sa.String(length=100), nullable=True),
        sa.Column("legal_description", sa.Text(), nullable=True),
        sa.Column("state_land_use_code", sa.String(length=20), nullable=True),
        sa.Column("building_count", sa.Integer(), nullable=True),
        sa.UniqueConstraint("property_id", name="uq_parcels_property"),
    )

    op.create_table(
        "school_districts",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_fk(),
        sa.Column("school_tax_district_1", sa.String(length=100), nullable=True),
        sa.Column("school_tax_district_2", sa.String(length=100), nullable=True),
        sa.Column("school_tax_district_3", sa.String(length=100), nullable=True),
        sa.Column("school_district_name", sa.String(length=200), nullable=True),
        sa.UniqueConstraint("property_id", name="uq_school_districts_property"),
    )

    op.create_table(
        "pre_foreclosures",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_fk(),
        sa.Column("flag", sa.Boolean(), nullable=True),
        sa.Column("ind", sa.String(length=50), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("doc_type", sa.String(length=100), nullable=True),
        sa.Column("recording_date", sa.Date(), nullable=True),
        sa.UniqueConstraint("property_id", name="uq_pre_foreclosures_property"),
    )

    op.create_table(
        "last_sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_fk(),
        sa.Column("sale_date", sa.Date(), nullable=True),
        sa.Column("recording_date", sa.Date(), nullable=True),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("document_type", sa.String(length=100), nullable=True),
        sa.Column("mtg_amount", sa.Float(), nullable=True),
        sa.Column("mtg_type", sa.String(length=50), nullable=True),
        sa.Column("lender", sa.Text(), nullable=True),
        sa.Column("mtg_interest_rate", sa.String(length=20), nullable=True),
        sa.Column("mtg_term_months", sa.String(length=20), nullable=True),
        sa.UniqueConstraint("property_id", name="uq_last_sales_property"),
    )

    op.create_table(
        "current_sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_fk(),
        sa.Column("doc_num", sa.String(length=50), nullable=True),
        sa.Column("buyer_1", sa.Text(), nullable=True),
        sa.Column("buyer_2", sa.Text(), nullable=True),
        sa.Column("seller_1", sa.Text(), nullable=True),
        sa.Column("seller_2", sa.Text(), nullable=True),
        sa.UniqueConstraint("property_id", name="uq_current_sales_property"),
    )

    # ---- 1:many attribute tables ----
    op.create_table(
        "assessments",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_fk(),
        sa.Column("assessed_year", sa.Integer(), nullable=False),
        sa.Column("land_value", sa.Float(), nullable=True),
        sa.Column("improvement_value", sa.Float(), nullable=True),
        sa.Column("assessed_value", sa.Float(), nullable=True),
        sa.Column("market_value", sa.Float(), nullable=True),
        sa.UniqueConstraint("property_id", "assessed_year", name="uq_assessments_property_year"),
    )
    op.create_index("ix_assessments_property_id", "assessments", ["property_id"])

    op.create_table(
        "tax_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_fk(),
        sa.Column("tax_year", sa.Integer(), nullable=False),
        sa.Column("tax_amount", sa.Float(), nullable=True),
        sa.Column("tax_delinquent_year", sa.Integer(), nullable=True),
        sa.Column("tax_rate_code_area", sa.String(length=50), nullable=True),
        sa.UniqueConstraint("property_id", "tax_year", name="uq_tax_records_property_year"),
    )
    op.create_index("ix_tax_records_property_id", "tax_records", ["property_id"])

    op.create_table(
        "valuations",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_fk(),
        sa.Column("value", sa.Float(), nullable=True),
        sa.Column("high", sa.Float(), nullable=True),
        sa.Column("low", sa.Float(), nullable=True),
        sa.Column("forecast_standard_deviation", sa.Float(), nullable=True),
        sa.Column("valuation_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_valuations_property_id", "valuations", ["property_id"])


def downgrade():
    op.drop_table("valuations")
    op.drop_table("tax_records")
    op.drop_table("assessments")
    op.drop_table("current_sales")
    op.drop_table("last_sales")
    op.drop_table("pre_foreclosures")
    op.drop_table("school_districts")
    op.drop_table("parcels")
    op.drop_table("exemptions")
    op.drop_table("structures")
    op.drop_table("addresses")
    op.drop_table("property_transactions")
    op.drop_table("properties")
    op.drop_table("companies")
    op.drop_table("sfr_sync_state")
