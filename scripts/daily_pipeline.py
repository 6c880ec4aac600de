from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any


def _ensure_import_path() -> None:
    project_root = Path(__file__).resolve().parents[1]
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


def run_pipeline(ctx: Any, *, max_matches: int, competitions: list[str] | None) -> dict[str, int]:
    """Results -> scoring -> leaderboards -> achievements, for one scheduled run."""
    from matchday.domain.value_objects.ids import GENERAL_LEAGUE_ID

    logger = logging.getLogger("matchday.pipeline")

    summary = ctx.results.update_recent_results(max_matches, competitions)
    removed = ctx.cache.clear_expired()

    leagues = [GENERAL_LEAGUE_ID, *ctx.leagues.list_league_ids()]
    rebuilt = 0
    for league_id in leagues:
        try:
            ctx.recalculate_league_leaderboard(league_id)
            rebuilt += 1
        except Exception:
            logger.exception("Leaderboard rebuild failed", extra={"league_id": league_id})

    unlocked = 0
    for user_id in ctx.predictions.list_user_ids():
        report = ctx.get_user_statistics(user_id, force_refresh=True)
        achievements = ctx.get_user_achievement_data(user_id, report, force_refresh=True)
        unlocked += len(achievements.newly_unlocked)

    return {
        "updated": summary["updated"],
        "processed": summary["processed"],
        "errors": summary["errors"],
        "expired_removed": removed,
        "leaderboards": rebuilt,
        "achievements_unlocked": unlocked,
    }


def main(argv: list[str] | None = None) -> int:
    _ensure_import_path()

    parser = argparse.ArgumentParser(
        description="Daily pipeline: results → scoring → leaderboards → achievements"
    )
    parser.add_argument("--db", default=None, help="SQLite DB path (default: MATCHDAY_DB_PATH)")
    parser.add_argument("--max-matches", type=int, default=20)
    parser.add_argument("--competition", action="append", dest="competitions")
    args = parser.parse_args(argv)

    from matchday.application.context import build_context, connect
    from matchday.config.settings import settings
    from matchday.logging_config import get_logger

    get_logger(logging.INFO)
    db_path = os.path.abspath(args.db or settings.db_path)
    ctx = build_context(conn=connect(db_path))
    try:
        totals = run_pipeline(ctx, max_matches=args.max_matches, competitions=args.competitions)
    finally:
        ctx.close()

    print("Daily pipeline done: " + ", ".join(f"{k}={v}" for k, v in totals.items()))
    return 0 if totals["errors"] == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
