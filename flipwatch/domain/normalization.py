# flipwatch/domain/normalization.py
from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

# -----------------------------------------------------------------------------
# Dates
# -----------------------------------------------------------------------------

_YMD_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})")


def parse_date(value: Any) -> Optional[date]:
    """
    Best-effort conversion of an API/DB date value to a `date`.

    Accepts date, datetime, "YYYY-MM-DD", ISO datetimes ("2026-01-20T00:00:00Z")
    and "MM/DD/YYYY". Anything else -> None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    s = value.strip()
    if not s:
        return None

    m = _YMD_PREFIX.match(s)
    if m:
        try:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        except ValueError:
            return None

    m = _US_DATE.match(s)
    if m:
        try:
            return date(int(m.group(3)), int(m.group(1)), int(m.group(2)))
        except ValueError:
            return None

    return None


def normalize_date_to_ymd(value: Any, *, subtract_days: int = 0) -> Optional[str]:
    d = parse_date(value)
    if d is None:
        return None
    if subtract_days:
        d = d - timedelta(days=int(subtract_days))
    return d.isoformat()


# -----------------------------------------------------------------------------
# Geography
# -----------------------------------------------------------------------------

def normalize_county_name(county: Optional[str]) -> Optional[str]:
    """'San Diego County, California' -> 'San Diego'"""
    if not county or not isinstance(county, str):
        return None

    normalized = county.strip()

    comma = normalized.find(",")
    if comma != -1:
        normalized = normalized[:comma].strip()

    if normalized.lower().endswith(" county"):
        normalized = normalized[: -len(" county")].strip()

    return normalized or None


_STREET_TYPE_ABBREVIATIONS = {
    "avenue": "Ave",
    "av": "Ave",
    "ave": "Ave",
    "avn": "Ave",
    "avnue": "Ave",
    "boulevard": "Blvd",
    "blvd": "Blvd",
    "boul": "Blvd",
    "boulv": "Blvd",
    "circle": "Cir",
    "cir": "Cir",
    "circ": "Cir",
    "crcl": "Cir",
    "court": "Ct",
    "ct": "Ct",
    "crt": "Ct",
    "drive": "Dr",
    "dr": "Dr",
    "drv": "Dr",
    "lane": "Ln",
    "ln": "Ln",
    "parkway": "Pkwy",
    "pkwy": "Pkwy",
    "parkwy": "Pkwy",
    "place": "Pl",
    "pl": "Pl",
    "plz": "Pl",
    "road": "Rd",
    "rd": "Rd",
    "street": "St",
    "st": "St",
    "str": "St",
    "strt": "St",
    "suite": "Ste",
    "ste": "Ste",
    "unit": "Unit",
    "way": "Way",
    "wy": "Way",
}


def _cap(word: str) -> str:
    return word[:1].upper() + word[1:].lower() if word else word


def normalize_to_title_case(text: Optional[str]) -> Optional[str]:
    """Title-case every word; 'LLC' stays upper case."""
    if not text or not isinstance(text, str):
        return None
    words = []
    for word in text.strip().split():
        words.append("LLC" if word.upper() == "LLC" else _cap(word))
    return " ".join(words) or None


def normalize_address(address: Optional[str]) -> Optional[str]:
    """
    '1234 MAIN STREET' -> '1234 Main St'

    The leading house number is kept verbatim; the last word is mapped to its
    USPS abbreviation when it is a known street type.
    """
    if not address or not isinstance(address, str):
        return None

    parts = address.strip().split()
    if not parts:
        return None

    number: Optional[str] = None
    if re.match(r"^\d+", parts[0]):
        number = parts[0]
        parts = parts[1:]

    street: list[str] = []
    for idx, word in enumerate(parts):
        is_last = idx == len(parts) - 1
        abbr = _STREET_TYPE_ABBREVIATIONS.get(word.lower().rstrip("."))
        if is_last and abbr:
            street.append(abbr)
        else:
            street.append(_cap(word))

    out = " ".join(street)
    if number:
        out = f"{number} {out}"
    return out.strip() or None


def normalize_subdivision(subdivision: Optional[str]) -> Optional[str]:
    return normalize_to_title_case(subdivision)


# -----------------------------------------------------------------------------
# Property type
# -----------------------------------------------------------------------------

def normalize_property_type(property_type: Optional[str]) -> Optional[str]:
    if not property_type or not isinstance(property_type, str):
        return None

    trimmed = property_type.strip()
    if not trimmed:
        return None

    # exact spelling only; other SFR variants fall through unchanged
    if trimmed == "Single Family Residential":
        return trimmed

    lower = trimmed.lower()
    if "condominium" in lower:
        return "Condominium"
    if "duplex" in lower:
        return "Duplex"
    if "triplex" in lower:
        return "Triplex"
    if "fourplex" in lower:
        return "Fourplex"
    if any(k in lower for k in ("townhome", "townhouse", "town home", "town house")):
        return "Townhouse"
    if "vacant land" in lower or "vacant lot" in lower or ("vacant" in lower and "non-vacant" not in lower):
        return "Vacant Land"

    return trimmed


# -----------------------------------------------------------------------------
# Company names
# -----------------------------------------------------------------------------

_FIXED_SUFFIXES = {
    "LLC": "LLC",
    "LLP": "LLP",
    "PLLC": "PLLC",
    "LC": "LC",
    "PC": "PC",
    "P.C": "PC",
    "LP": "LP",
    "GP": "GP",
    "INC": "Inc",
    "INCORPORATED": "Inc",
    "CORP": "Corp",
    "CORPORATION": "Corp",
}


def normalize_company_name_for_storage(name: Optional[str]) -> Optional[str]:
    """
    Display/storage form, e.g. 'GRANDFIELD PROPERTIES, LLC.' -> 'Grandfield Properties LLC'.
    This is the value kept in companies.company_name (unique).
    """
    if not name or not isinstance(name, str):
        return None

    words = []
    for word in name.strip().split():
        clean = re.sub(r"[,.;]+$", "", word)
        if not clean:
            continue
        fixed = _FIXED_SUFFIXES.get(clean.upper())
        words.append(fixed if fixed else _cap(clean))

    out = re.sub(r"[,.;]+$", "", " ".join(words)).strip()
    return out or None


def normalize_company_name_for_comparison(name: Optional[str]) -> Optional[str]:
    """
    Equality key: punctuation dropped, whitespace collapsed, lower-cased.
    'Grandfield Properties, LLC.' and 'GRANDFIELD  PROPERTIES LLC' share a key.
    """
    if not name or not isinstance(name, str):
        return None

    out = re.sub(r"[,.;:]", "", name.strip())
    out = re.sub(r"\s+", " ", out).strip().lower()
    return out or None


def company_key(raw_name: Optional[str]) -> Optional[str]:
    """Comparison key for a raw feed name (storage form first, so both paths agree)."""
    storage = normalize_company_name_for_storage(raw_name)
    return normalize_company_name_for_comparison(storage) if storage else None
