from __future__ import annotations

import json
import sqlite3
from typing import Optional, Sequence

from matchday.domain.entities._time import utcnow
from matchday.domain.entities.leaderboard import LeaderboardEntry
from matchday.domain.interfaces.leagues import LeaderboardInitializer
from matchday.errors import PersistenceError


class LeagueDirectorySqlite:
    """SQLite-backed league membership and competition scope.

    League management lives outside the core; this adapter only offers the
    reads the pipeline needs plus the minimal writes used by seeding scripts.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._conn.execute("PRAGMA foreign_keys = ON;")
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS leagues (
                league_id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                competitions TEXT
            )
            """
        )
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS league_members (
                league_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                joined_at TEXT NOT NULL,
                PRIMARY KEY (league_id, user_id),
                FOREIGN KEY (league_id) REFERENCES leagues(league_id) ON DELETE CASCADE
            )
            """
        )
        self._conn.commit()

    def create_league(
        self, league_id: str, name: str, competitions: Optional[Sequence[str]] = None
    ) -> None:
        try:
            with self._conn:
                self._conn.execute(
                    """
                    INSERT INTO leagues (league_id, name, competitions) VALUES (?, ?, ?)
                    ON CONFLICT(league_id) DO UPDATE SET
                        name=excluded.name, competitions=excluded.competitions
                    """,
                    (
                        league_id,
                        name,
                        json.dumps(list(competitions)) if competitions else None,
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to save league {league_id}: {exc}") from exc

    def add_member(
        self,
        league_id: str,
        user_id: str,
        initializer: Optional[LeaderboardInitializer] = None,
    ) -> Optional[LeaderboardEntry]:
        """Add a member; ``initializer`` seeds their leaderboard entry after the insert.

        Returns the seeded entry, or ``None`` without an initializer.
        """
        try:
            with self._conn:
                self._conn.execute(
                    "INSERT OR IGNORE INTO league_members (league_id, user_id, joined_at) VALUES (?, ?, ?)",
                    (league_id, user_id, utcnow().isoformat()),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to add {user_id} to {league_id}: {exc}") from exc
        if initializer is None:
            return None
        return initializer.initialize_member(league_id, user_id)

    def get_member_ids(self, league_id: str) -> list[str]:
        cur = self._conn.execute(
            "SELECT user_id FROM league_members WHERE league_id = ? ORDER BY joined_at, user_id",
            (league_id,),
        )
        return [str(r[0]) for r in cur.fetchall()]

    def get_competitions(self, league_id: str) -> Optional[list[str]]:
        cur = self._conn.execute(
            "SELECT competitions FROM leagues WHERE league_id = ?", (league_id,)
        )
        row = cur.fetchone()
        if not row or not row[0]:
            return None
        return [str(c) for c in json.loads(row[0])]

    def count_user_leagues(self, user_id: str) -> int:
        cur = self._conn.execute(
            "SELECT COUNT(*) FROM league_members WHERE user_id = ?", (user_id,)
        )
        return int(cur.fetchone()[0])

    def list_league_ids(self) -> list[str]:
        cur = self._conn.execute("SELECT league_id FROM leagues ORDER BY league_id")
        return [str(r[0]) for r in cur.fetchall()]
