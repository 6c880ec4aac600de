from __future__ import annotations

import argparse
import logging
from typing import Iterable, Sequence

from matchday.application.context import build_context
from matchday.domain.entities.leaderboard import RankedEntry
from matchday.domain.value_objects.enums import LeaderboardPeriod
from matchday.domain.value_objects.ids import GENERAL_LEAGUE_ID
from matchday.logging_config import get_logger


def _format_rows(rows: Iterable[RankedEntry]) -> str:
    lines = [f"{'#':>3} {'user':<20} {'pts':>5} {'acc':>6} {'pred':>5} {'gap':>5} form"]
    for r in rows:
        marker = "*" if r.is_top_performer else " "
        lines.append(
            f"{r.rank:>3}{marker}{r.user_id:<20} {r.total_points:>5} {r.accuracy:>5.0f}% "
            f"{r.total_predictions:>5} {r.points_from_first:>5} {r.recent_form.value} ({r.trend.value})"
        )
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Show (and optionally rebuild) a league leaderboard")
    p.add_argument("--league", default=GENERAL_LEAGUE_ID, help="League id (default: general)")
    p.add_argument(
        "--period",
        choices=[period.value for period in LeaderboardPeriod],
        default=LeaderboardPeriod.OVERALL.value,
    )
    p.add_argument("--recalculate", action="store_true", help="Rebuild before printing")
    p.add_argument("--user", default=None, help="Print this user's position only")
    return p


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    get_logger(logging.INFO)

    ctx = build_context()
    try:
        if args.recalculate:
            ctx.recalculate_league_leaderboard(args.league)
        period = LeaderboardPeriod(args.period)

        if args.user:
            pos = ctx.leaderboard.get_user_position(args.league, args.user, period)
            if pos is None:
                print(f"{args.user} is not on the {args.league} leaderboard.")
                return 1
            print(
                f"{pos.user_id}: rank {pos.rank}/{pos.total_members}, "
                f"{pos.total_points} pts, percentile {pos.percentile}"
            )
            return 0

        rows = ctx.get_enhanced_league_leaderboard(args.league, period)
        if not rows:
            print("Leaderboard is empty.")
        else:
            print(_format_rows(rows))
        return 0
    finally:
        ctx.close()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
