# flipwatch/domain/flip_status.py
from __future__ import annotations

from typing import Optional

STATUS_SOLD = "sold"
STATUS_ON_MARKET = "on-market"
STATUS_IN_RENOVATION = "in-renovation"

LISTING_ON_MARKET = "on-market"
LISTING_OFF_MARKET = "off-market"

TX_ACQUISITION = "acquisition"
TX_SALE = "sale"
TX_COMPANY_TO_COMPANY = "company-to-company"

_ON_MARKET_VALUES = {"on market", "on_market"}


def is_on_market(listing_status: Optional[str]) -> bool:
    return (listing_status or "").strip().lower() in _ON_MARKET_VALUES


def derive_listing_status(listing_status: Optional[str]) -> str:
    return LISTING_ON_MARKET if is_on_market(listing_status) else LISTING_OFF_MARKET


def derive_status(buyer_id: Optional[int], seller_id: Optional[int], listing_status: Optional[str]) -> str:
    """
    First match wins:
      1. company sold to an individual/trust -> sold
      2. SFR reports it on market            -> on-market
      3. otherwise (corporately held, unlisted) -> in-renovation
    """
    if seller_id is not None and buyer_id is None:
        return STATUS_SOLD
    if is_on_market(listing_status):
        return STATUS_ON_MARKET
    return STATUS_IN_RENOVATION


def derive_transaction_type(buyer_corporate: bool, seller_corporate: bool) -> Optional[str]:
    if buyer_corporate and not seller_corporate:
        return TX_ACQUISITION
    if seller_corporate and not buyer_corporate:
        return TX_SALE
    if buyer_corporate and seller_corporate:
        return TX_COMPANY_TO_COMPANY
    return None
