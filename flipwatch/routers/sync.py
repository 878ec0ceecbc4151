# flipwatch/routers/sync.py
from __future__ import annotations

from datetime import date
from typing import Iterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..clients.sfr import SfrClient
from ..db import get_db
from ..domain.markets import MARKETS, get_market
from ..schemas import MarketOut, SyncResultOut, SyncStateOut
from ..services.market_sync import SyncMarketParams, sync_market
from ..services.sync_state_service import list_states

router = APIRouter(prefix="/sync", tags=["sync"])


def get_sfr_client() -> Iterator[SfrClient]:
    """Overridable in tests (app.dependency_overrides)."""
    client = None
    try:
        client = SfrClient()
    except ValueError as e:
        raise HTTPException(status_code=503, detail=f"SFR API not configured: {e}")
    try:
        yield client
    finally:
        client.close()


@router.get("/markets", response_model=list[MarketOut])
def markets():
    return [MarketOut(code=m.code, msa=m.msa, excluded_addresses=list(m.excluded_addresses)) for m in MARKETS]


@router.get("/state", response_model=list[SyncStateOut])
def state(db: Session = Depends(get_db)):
    return list_states(db)


@router.post("/{market_code}", response_model=SyncResultOut, response_model_by_alias=True)
def run_sync(
    market_code: str,
    today: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
    client: SfrClient = Depends(get_sfr_client),
):
    try:
        m = get_market(market_code)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"unknown market: {market_code}")

    try:
        result = sync_market(SyncMarketParams.for_market(m, today=today), db=db, client=client)
    except Exception as e:
        raise HTTPException(status_code=502, detail=f"sync failed for {m.code}: {type(e).__name__}: {e}")

    return SyncResultOut(
        success=result.success,
        market=result.market,
        total_processed=result.total_processed,
        total_inserted=result.total_inserted,
        total_updated=result.total_updated,
        date_range=result.date_range,
        last_confirmed_sale_date=result.last_confirmed_sale_date,
    )
