# tests/test_flip_status.py
from __future__ import annotations

from flipwatch.domain.flip_status import derive_listing_status, derive_status, derive_transaction_type


def test_company_sold_to_individual_is_sold_even_if_listed():
    assert derive_status(buyer_id=None, seller_id=5, listing_status="On Market") == "sold"


def test_on_market_spellings():
    assert derive_status(1, None, "On Market") == "on-market"
    assert derive_status(1, 5, "on_market") == "on-market"
    assert derive_status(1, None, "  ON MARKET ") == "on-market"


def test_everything_else_is_in_renovation():
    assert derive_status(1, None, "Off Market") == "in-renovation"
    assert derive_status(1, 5, None) == "in-renovation"
    assert derive_status(None, None, None) == "in-renovation"


def test_listing_status():
    assert derive_listing_status("On Market") == "on-market"
    assert derive_listing_status("Off Market") == "off-market"
    assert derive_listing_status(None) == "off-market"


def test_transaction_type():
    assert derive_transaction_type(True, False) == "acquisition"
    assert derive_transaction_type(False, True) == "sale"
    assert derive_transaction_type(True, True) == "company-to-company"
    assert derive_transaction_type(False, False) is None
