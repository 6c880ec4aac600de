from __future__ import annotations

import sqlite3
from typing import Any, Optional, Sequence

from matchday.domain.entities.leaderboard import LeaderboardEntry
from matchday.domain.value_objects.enums import LeaderboardPeriod
from matchday.errors import PersistenceError
from matchday.repositories.leaderboard import LeaderboardRepo

_COLUMNS = (
    "league_id, period, user_id, total_points, total_predictions, accuracy, "
    "exact_scores, correct_outcomes, correct_scorers, current_streak, best_streak, "
    "last_match_points, average_points_per_match, rank, created_at, last_updated"
)
_PLACEHOLDERS = ", ".join("?" for _ in _COLUMNS.split(","))


class LeaderboardRepoSqlite(LeaderboardRepo):
    """SQLite implementation of :class:`LeaderboardRepo`."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS leaderboard_entries (
                league_id TEXT NOT NULL,
                period TEXT NOT NULL CHECK(period IN ('overall','weekly','monthly')),
                user_id TEXT NOT NULL,
                total_points INTEGER NOT NULL DEFAULT 0,
                total_predictions INTEGER NOT NULL DEFAULT 0,
                accuracy REAL NOT NULL DEFAULT 0,
                exact_scores INTEGER NOT NULL DEFAULT 0,
                correct_outcomes INTEGER NOT NULL DEFAULT 0,
                correct_scorers INTEGER NOT NULL DEFAULT 0,
                current_streak INTEGER NOT NULL DEFAULT 0,
                best_streak INTEGER NOT NULL DEFAULT 0,
                last_match_points INTEGER NOT NULL DEFAULT 0,
                average_points_per_match REAL NOT NULL DEFAULT 0,
                rank INTEGER NOT NULL,
                created_at TEXT,
                last_updated TEXT,
                PRIMARY KEY (league_id, period, user_id)
            )
            """
        )
        self._conn.commit()

    def replace(
        self, league_id: str, period: LeaderboardPeriod, entries: Sequence[LeaderboardEntry]
    ) -> None:
        try:
            with self._conn:
                self._conn.execute(
                    "DELETE FROM leaderboard_entries WHERE league_id = ? AND period = ?",
                    (league_id, period.value),
                )
                self._conn.executemany(
                    f"INSERT INTO leaderboard_entries ({_COLUMNS}) VALUES ({_PLACEHOLDERS})",
                    [_entry_to_row(e) for e in entries],
                )
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Failed to store {period.value} leaderboard of {league_id}: {exc}"
            ) from exc

    def upsert(self, entry: LeaderboardEntry) -> None:
        try:
            with self._conn:
                self._conn.execute(
                    f"INSERT OR REPLACE INTO leaderboard_entries ({_COLUMNS}) VALUES ({_PLACEHOLDERS})",
                    _entry_to_row(entry),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to store leaderboard entry: {exc}") from exc

    def list_entries(self, league_id: str, period: LeaderboardPeriod) -> list[LeaderboardEntry]:
        cur = self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM leaderboard_entries
            WHERE league_id = ? AND period = ?
            ORDER BY rank, user_id
            """,
            (league_id, period.value),
        )
        return [_row_to_entry(r) for r in cur.fetchall()]

    def get(
        self, league_id: str, period: LeaderboardPeriod, user_id: str
    ) -> Optional[LeaderboardEntry]:
        cur = self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM leaderboard_entries
            WHERE league_id = ? AND period = ? AND user_id = ?
            """,
            (league_id, period.value, user_id),
        )
        row = cur.fetchone()
        return _row_to_entry(row) if row else None

    def count_first_places(self, user_id: str, *, exclude_league: Optional[str] = None) -> int:
        cur = self._conn.execute(
            """
            SELECT COUNT(*) FROM leaderboard_entries
            WHERE user_id = ? AND period = 'overall' AND rank = 1
              AND total_predictions > 0 AND league_id != COALESCE(?, '')
            """,
            (user_id, exclude_league),
        )
        return int(cur.fetchone()[0])


def _entry_to_row(e: LeaderboardEntry) -> tuple[Any, ...]:
    return (
        e.league_id,
        e.period.value,
        e.user_id,
        e.total_points,
        e.total_predictions,
        e.accuracy,
        e.exact_scores,
        e.correct_outcomes,
        e.correct_scorers,
        e.current_streak,
        e.best_streak,
        e.last_match_points,
        e.average_points_per_match,
        e.rank,
        e.created_at.isoformat() if e.created_at else None,
        e.last_updated.isoformat() if e.last_updated else None,
    )


def _row_to_entry(row: Sequence[Any]) -> LeaderboardEntry:
    names = [c.strip() for c in _COLUMNS.split(",")]
    return LeaderboardEntry(**dict(zip(names, row)))
