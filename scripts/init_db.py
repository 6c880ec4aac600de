from __future__ import annotations

import argparse
import os
import sqlite3
import sys
from pathlib import Path


def ensure_schema(conn: sqlite3.Connection) -> None:
    # Programmatic schema init via repos so it always matches code
    from matchday.repositories.sqlite.achievements_sqlite import AchievementsRepoSqlite
    from matchday.repositories.sqlite.leaderboard_sqlite import LeaderboardRepoSqlite
    from matchday.repositories.sqlite.leagues_sqlite import LeagueDirectorySqlite
    from matchday.repositories.sqlite.match_results_sqlite import MatchResultsRepoSqlite
    from matchday.repositories.sqlite.predictions_sqlite import PredictionsRepoSqlite
    from matchday.repositories.sqlite.user_stats_sqlite import UserStatsRepoSqlite

    LeagueDirectorySqlite(conn)
    PredictionsRepoSqlite(conn)
    MatchResultsRepoSqlite(conn)
    UserStatsRepoSqlite(conn)
    LeaderboardRepoSqlite(conn)
    AchievementsRepoSqlite(conn)


def main(argv: list[str] | None = None) -> int:
    # Ensure project root (containing 'matchday') is importable
    project_root = Path(__file__).resolve().parents[1]
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

    parser = argparse.ArgumentParser(description="Initialize SQLite database schema")
    parser.add_argument(
        "--db",
        default=os.getenv("MATCHDAY_DB_PATH", os.path.join("data", "matchday.sqlite3")),
        help="Path to SQLite DB file (will be created if missing)",
    )
    args = parser.parse_args(argv)

    db_path = os.path.abspath(args.db)
    os.makedirs(os.path.dirname(db_path), exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        ensure_schema(conn)
    finally:
        conn.close()

    print(f"Initialized schema at: {db_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
