# flipwatch/cli/__main__.py
from __future__ import annotations

import argparse

from flipwatch.db import init_db, session_scope
from flipwatch.domain.markets import market_codes
from flipwatch.domain.normalization import parse_date
from flipwatch.logging_config import configure_logging
from flipwatch.services.market_sync import run_configured_market, sync_all_markets
from flipwatch.services.sync_state_service import list_states


def _date_arg(value: str):
    d = parse_date(value)
    if d is None:
        raise argparse.ArgumentTypeError(f"not a date: {value!r} (expected YYYY-MM-DD)")
    return d


def _cmd_sync(args) -> int:
    if args.all:
        results = sync_all_markets(today=args.today)
        print({"ok": all(r["ok"] for r in results.values()), "markets": results})
        return 0 if all(r["ok"] for r in results.values()) else 1

    try:
        result = run_configured_market(args.market, today=args.today)
    except Exception as e:
        print({"ok": False, "market_code": args.market, "error": f"{type(e).__name__}: {e}"})
        return 1
    print({"ok": True, "market_code": args.market, **result.to_dict()})
    return 0


def _cmd_state(_args) -> int:
    with session_scope() as db:
        rows = list_states(db)
        print(
            {
                "ok": True,
                "markets": [
                    {
                        "msa": r.msa,
                        "last_sale_date": r.last_sale_date.isoformat() if r.last_sale_date else None,
                        "total_records_synced": r.total_records_synced,
                        "last_sync_at": r.last_sync_at.isoformat() if r.last_sync_at else None,
                    }
                    for r in rows
                ],
            }
        )
    return 0


def _cmd_init_db(_args) -> int:
    init_db()
    print({"ok": True})
    return 0


def main(argv=None) -> int:
    p = argparse.ArgumentParser(prog="flipwatch")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("sync", help="run an incremental sync")
    target = s.add_mutually_exclusive_group(required=True)
    target.add_argument("--market", choices=market_codes(), type=str.upper)
    target.add_argument("--all", action="store_true")
    s.add_argument("--today", type=_date_arg, default=None, help="upper bound of the sale-date window")
    s.set_defaults(func=_cmd_sync)

    st = sub.add_parser("state", help="print the sync watermark of every market")
    st.set_defaults(func=_cmd_state)

    i = sub.add_parser("init-db", help="create tables from the models (local/dev only)")
    i.set_defaults(func=_cmd_init_db)

    args = p.parse_args(argv)
    configure_logging()
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
