# flipwatch/workers/sync_tasks.py
from __future__ import annotations

import logging
from typing import Optional

from ..domain.normalization import parse_date
from ..services.market_sync import run_configured_market, sync_all_markets
from .celery_app import celery_app

log = logging.getLogger(__name__)


@celery_app.task(bind=True, name="flipwatch.workers.sync_tasks.sync_market_task")
def sync_market_task(self, market_code: str, today: Optional[str] = None) -> dict:
    """
    One market. No automatic retry: the watermark already makes the next
    nightly run pick up where this one stopped.
    """
    task_id = getattr(self.request, "id", None)
    try:
        result = run_configured_market(market_code, today=parse_date(today))
    except KeyError as e:
        return {"ok": False, "market_code": market_code, "error": str(e)}
    except Exception as e:
        log.error(
            "[%s SYNC] Task failed: %s",
            market_code,
            e,
            extra={"market_code": market_code, "task_id": task_id},
        )
        return {"ok": False, "market_code": market_code, "error": f"{type(e).__name__}: {e}"}

    return {"ok": True, "market_code": market_code, "result": result.to_dict()}


@celery_app.task(bind=True, name="flipwatch.workers.sync_tasks.sync_all_markets_task")
def sync_all_markets_task(self, today: Optional[str] = None) -> dict:
    results = sync_all_markets(today=parse_date(today))
    return {"ok": all(r.get("ok") for r in results.values()), "markets": results}
