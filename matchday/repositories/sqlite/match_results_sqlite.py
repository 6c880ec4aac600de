from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Optional, Sequence

from matchday.domain.entities.match import MatchResult
from matchday.errors import PersistenceError
from matchday.repositories.match_results import MatchResultsRepo


class MatchResultsRepoSqlite(MatchResultsRepo):
    """SQLite implementation of :class:`MatchResultsRepo`.

    The full result is kept as a JSON document next to the timestamp columns the
    cache queries on.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS match_results (
                match_id TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                cached_at TEXT,
                last_updated TEXT
            )
            """
        )
        self._conn.execute(
            "CREATE INDEX IF NOT EXISTS ix_match_results_updated ON match_results(last_updated)"
        )
        self._conn.commit()

    def get(self, match_id: str) -> Optional[MatchResult]:
        cur = self._conn.execute(
            "SELECT payload FROM match_results WHERE match_id = ?",
            (match_id,),
        )
        row = cur.fetchone()
        return MatchResult.model_validate_json(row[0]) if row else None

    def get_many(self, match_ids: Sequence[str]) -> dict[str, MatchResult]:
        if not match_ids:
            return {}
        placeholders = ",".join("?" for _ in match_ids)
        cur = self._conn.execute(
            f"SELECT match_id, payload FROM match_results WHERE match_id IN ({placeholders})",
            tuple(match_ids),
        )
        return {str(r[0]): MatchResult.model_validate_json(r[1]) for r in cur.fetchall()}

    def upsert(self, result: MatchResult) -> None:
        try:
            with self._conn:
                self._conn.execute(
                    """
                    INSERT INTO match_results (match_id, payload, cached_at, last_updated)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(match_id) DO UPDATE SET
                        payload=excluded.payload,
                        cached_at=excluded.cached_at,
                        last_updated=excluded.last_updated
                    """,
                    (
                        result.match_id,
                        result.model_dump_json(),
                        result.cached_at.isoformat() if result.cached_at else None,
                        result.last_updated.isoformat() if result.last_updated else None,
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to cache result {result.match_id}: {exc}") from exc

    def list_recent(
        self, limit: int, *, cached_after: Optional[datetime] = None
    ) -> list[MatchResult]:
        since = cached_after.isoformat() if cached_after else None
        cur = self._conn.execute(
            """
            SELECT payload FROM match_results
            WHERE ? IS NULL OR cached_at > ?
            ORDER BY last_updated IS NULL, last_updated DESC
            LIMIT ?
            """,
            (since, since, limit),
        )
        return [MatchResult.model_validate_json(r[0]) for r in cur.fetchall()]

    def delete_cached_before(self, cutoff: datetime) -> int:
        try:
            with self._conn:
                cur = self._conn.execute(
                    "DELETE FROM match_results WHERE cached_at IS NULL OR cached_at < ?",
                    (cutoff.isoformat(),),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to purge expired results: {exc}") from exc
        return int(cur.rowcount)
