# flipwatch/domain/classifier.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

# TR = Trust, FL = Family Living Trust
TRUST_OWNERSHIP_CODES = frozenset({"TR", "FL"})

_TRUST_PATTERNS = [
    re.compile(r"\bTRUST\b", re.IGNORECASE),
    re.compile(r"\bLIVING TRUST\b", re.IGNORECASE),
    re.compile(r"\bFAMILY TRUST\b", re.IGNORECASE),
    re.compile(r"\bREVOCABLE TRUST\b", re.IGNORECASE),
    re.compile(r"\bIRREVOCABLE TRUST\b", re.IGNORECASE),
    re.compile(r"\bSPOUSAL TRUST\b", re.IGNORECASE),
]

_CORPORATE_PATTERNS = [
    re.compile(r"\bLLC\b", re.IGNORECASE),
    re.compile(r"\bINC\b", re.IGNORECASE),
    re.compile(r"\bCORP\b", re.IGNORECASE),
    re.compile(r"\bLTD\b", re.IGNORECASE),
    re.compile(r"\bLP\b", re.IGNORECASE),
    re.compile(r"\bPROPERTIES\b", re.IGNORECASE),
    re.compile(r"\bINVESTMENTS?\b", re.IGNORECASE),
    re.compile(r"\bCAPITAL\b", re.IGNORECASE),
    re.compile(r"\bVENTURES?\b", re.IGNORECASE),
    re.compile(r"\bHOLDINGS?\b", re.IGNORECASE),
    re.compile(r"\bREALTY\b", re.IGNORECASE),
]


def is_trust(name: Optional[str], ownership_code: Optional[str] = None) -> bool:
    if not name:
        return False
    if ownership_code and ownership_code.strip().upper() in TRUST_OWNERSHIP_CODES:
        return True
    return any(p.search(name) for p in _TRUST_PATTERNS)


def is_flipping_company(name: Optional[str], ownership_code: Optional[str] = None) -> bool:
    """
    Corporate (LLC/Inc/Corp/...) and not a trust.
    Individuals and trusts are both out of scope for the sync.
    """
    if not name:
        return False
    if is_trust(name, ownership_code):
        return False
    return any(p.search(name) for p in _CORPORATE_PATTERNS)


@dataclass(frozen=True)
class PartyClassification:
    buyer_corporate: bool
    seller_corporate: bool

    @property
    def any_corporate(self) -> bool:
        return self.buyer_corporate or self.seller_corporate


def classify_parties(
    buyer_name: Optional[str],
    seller_name: Optional[str],
    buyer_ownership_code: Optional[str] = None,
) -> PartyClassification:
    # the feed carries no ownership code for sellers
    return PartyClassification(
        buyer_corporate=is_flipping_company(buyer_name, buyer_ownership_code),
        seller_corporate=is_flipping_company(seller_name, None),
    )
