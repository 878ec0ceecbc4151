# tests/test_cli_and_markets.py
from __future__ import annotations

import json
import logging
from datetime import date

import pytest

import flipwatch.cli.__main__ as cli
from flipwatch.domain.markets import MARKETS, get_market, market_codes
from flipwatch.logging_config import JsonFormatter
from flipwatch.services.market_sync import SyncMarketParams, SyncMarketResult
from flipwatch.services.sync_state_service import advance_watermark, read_watermark
from flipwatch.workers.celery_app import celery_app
from flipwatch.workers.sync_tasks import sync_all_markets_task, sync_market_task


def _result(msa: str) -> SyncMarketResult:
    return SyncMarketResult(True, msa, 3, 2, 1, {"from": "2025-12-03", "to": "2026-01-12"}, "2026-01-11")


def test_market_registry():
    assert market_codes() == ["SD", "LA", "DEN", "SF"]
    assert get_market("sd").msa == "San Diego-Chula Vista-Carlsbad, CA"
    assert get_market(" den ").code == "DEN"
    with pytest.raises(KeyError):
        get_market("NYC")


def test_params_for_market_carry_exclusions():
    p = SyncMarketParams.for_market(get_market("LA"), today=date(2026, 1, 31))
    assert p.market == "Los Angeles-Long Beach-Anaheim, CA"
    assert p.market_code == "LA"
    assert p.excluded_addresses == ["11011 Huston St"]
    assert p.api_key == "test-key"


def test_cli_sync_one_market(monkeypatch, capsys):
    seen = {}

    def fake_run(code, *, today=None, **_kw):
        seen["code"], seen["today"] = code, today
        return _result(get_market(code).msa)

    monkeypatch.setattr(cli, "run_configured_market", fake_run)

    rc = cli.main(["sync", "--market", "sd", "--today", "2026-01-31"])

    assert rc == 0
    assert seen == {"code": "SD", "today": date(2026, 1, 31)}
    out = capsys.readouterr().out
    assert "'total_processed': 3" in out


def test_cli_sync_failure_returns_nonzero(monkeypatch, capsys):
    def boom(code, **_kw):
        raise RuntimeError("db went away")

    monkeypatch.setattr(cli, "run_configured_market", boom)

    assert cli.main(["sync", "--market", "LA"]) == 1
    assert "db went away" in capsys.readouterr().out


def test_cli_sync_all(monkeypatch):
    monkeypatch.setattr(
        cli,
        "sync_all_markets",
        lambda today=None: {"SD": {"ok": True, "result": {}}, "LA": {"ok": False, "error": "x"}},
    )
    assert cli.main(["sync", "--all"]) == 1


def test_cli_rejects_unknown_market_and_bad_date():
    with pytest.raises(SystemExit):
        cli.main(["sync", "--market", "NYC"])
    with pytest.raises(SystemExit):
        cli.main(["sync", "--market", "SD", "--today", "yesterday"])
    with pytest.raises(SystemExit):
        cli.main(["sync"])


def test_cli_state(db, capsys):
    row = read_watermark(db, MARKETS[0].msa)
    advance_watermark(db, row.id, date(2026, 1, 12))

    assert cli.main(["state"]) == 0
    out = capsys.readouterr().out
    assert "San Diego-Chula Vista-Carlsbad, CA" in out
    assert "'last_sale_date': '2026-01-11'" in out


def test_task_unknown_market_is_reported_not_raised():
    out = sync_market_task("XX")
    assert out["ok"] is False
    assert out["market_code"] == "XX"


def test_task_wraps_result(monkeypatch):
    monkeypatch.setattr(
        "flipwatch.workers.sync_tasks.run_configured_market",
        lambda code, today=None: _result(get_market(code).msa),
    )
    out = sync_market_task("SD", "2026-01-31")
    assert out["ok"] is True
    assert out["result"]["date_range"] == {"from": "2025-12-03", "to": "2026-01-12"}


def test_all_markets_task(monkeypatch):
    monkeypatch.setattr(
        "flipwatch.workers.sync_tasks.sync_all_markets",
        lambda today=None: {"SD": {"ok": True}, "LA": {"ok": True}},
    )
    assert sync_all_markets_task()["ok"] is True


def test_nightly_schedule():
    entry = celery_app.conf.beat_schedule["sync-all-markets-nightly"]
    assert entry["task"] == "flipwatch.workers.sync_tasks.sync_all_markets_task"
    assert entry["schedule"].hour == {2}
    assert entry["schedule"].minute == {0}
    assert celery_app.conf.timezone == "America/Los_Angeles"


def test_json_formatter_includes_sync_extras():
    record = logging.makeLogRecord(
        {"name": "flipwatch.sync", "levelname": "INFO", "msg": "page %d", "args": (3,), "market_code": "SD", "page": 3}
    )
    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "page 3"
    assert payload["market_code"] == "SD"
    assert payload["page"] == 3
    assert "batch" not in payload
