from __future__ import annotations

import argparse
import logging
from typing import Sequence

from matchday.application.context import build_context
from matchday.config.competitions import DEFAULT_COMPETITIONS
from matchday.domain.entities.match import MatchResult
from matchday.errors import APIError
from matchday.logging_config import get_logger


def _format_result(r: MatchResult) -> str:
    score = f"{r.final_score.home}-{r.final_score.away}" if r.final_score else "?-?"
    scorers = ", ".join(r.scorers) if r.scorers else "-"
    when = r.kickoff_time.isoformat() if r.kickoff_time else "?"
    return (
        f"{when} | {r.home_team or '?'} {score} {r.away_team or '?'} "
        f"[{r.status}] ({r.competition or '?'}, id={r.match_id}) scorers: {scorers}"
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Fetch match results and score predictions")
    p.add_argument("--verbose", action="store_true", help="Log debug output to stderr")
    sub = p.add_subparsers(dest="command", required=True)

    upd = sub.add_parser("update", help="Cache recent finished matches and score predictions")
    upd.add_argument("--max-matches", type=int, default=10)
    upd.add_argument(
        "--competition",
        action="append",
        dest="competitions",
        help=f"Competition slug (repeatable, default: {', '.join(DEFAULT_COMPETITIONS)})",
    )

    one = sub.add_parser("fetch", help="Show the result of one or more matches")
    one.add_argument("match_ids", nargs="+")
    one.add_argument("--force-refresh", action="store_true", help="Ignore cached results")
    one.add_argument("--max-api-calls", type=int, default=None)

    up = sub.add_parser("upcoming", help="List upcoming matches")
    up.add_argument("--competition", action="append", dest="competitions")
    up.add_argument("--date-from", default=None, help="YYYY-MM-DD")
    up.add_argument("--date-to", default=None, help="YYYY-MM-DD")
    up.add_argument("--season", default=None, help="Season label, e.g. 2024-2025")
    return p


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    get_logger(logging.DEBUG if args.verbose else logging.INFO)

    ctx = build_context()
    try:
        if args.command == "update":
            summary = ctx.results.update_recent_results(args.max_matches, args.competitions)
            print(
                f"updated={summary['updated']} processed={summary['processed']} "
                f"errors={summary['errors']}"
            )
            return 0 if summary["errors"] == 0 else 1

        if args.command == "fetch":
            if len(args.match_ids) == 1:
                result = ctx.results.fetch_match_result(args.match_ids[0], args.force_refresh)
                results = {args.match_ids[0]: result} if result else {}
            else:
                results = ctx.results.fetch_multiple_results(
                    args.match_ids, args.force_refresh, args.max_api_calls
                )
            if not results:
                print("No results available.")
            for match_id in args.match_ids:
                if match_id in results:
                    print(_format_result(results[match_id]))
            return 0

        matches = ctx.gateway.get_upcoming_matches(
            args.competitions, args.date_from, args.date_to, args.season
        )
        if not matches:
            print("No upcoming matches found.")
        for m in matches:
            print(
                f"{m.kickoff_time.isoformat()} | {m.home_team.name} vs {m.away_team.name} "
                f"[{m.status}] ({m.competition}, id={m.id})"
            )
        return 0
    except APIError as exc:
        print(f"Provider error: {exc}")
        return 2
    finally:
        ctx.close()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
