# flipwatch/domain/markets.py
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class MarketConfig:
    code: str  # short tag used in logs and the CLI, e.g. "SD"
    msa: str  # exact MSA string the SFR API expects
    name: str
    excluded_addresses: tuple[str, ...] = field(default_factory=tuple)


# Nightly run order is the declaration order.
MARKETS: tuple[MarketConfig, ...] = (
    MarketConfig(code="SD", msa="San Diego-Chula Vista-Carlsbad, CA", name="San Diego"),
    MarketConfig(
        code="LA",
        msa="Los Angeles-Long Beach-Anaheim, CA",
        name="Los Angeles",
        excluded_addresses=("11011 Huston St",),
    ),
    MarketConfig(code="DEN", msa="Denver-Aurora-Centennial, CO", name="Denver"),
    MarketConfig(code="SF", msa="San Francisco-Oakland-Fremont, CA", name="San Francisco"),
)

_BY_CODE = {m.code: m for m in MARKETS}


def market_codes() -> list[str]:
    return [m.code for m in MARKETS]


def get_market(code: str) -> MarketConfig:
    m = _BY_CODE.get((code or "").strip().upper())
    if m is None:
        raise KeyError(f"unknown market code: {code!r} (expected one of {', '.join(market_codes())})")
    return m
