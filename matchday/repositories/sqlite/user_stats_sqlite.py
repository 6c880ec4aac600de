from __future__ import annotations

import sqlite3
import threading
from collections import defaultdict
from typing import Any, Optional, Sequence

from matchday.domain.entities.statistics import UserStatistics
from matchday.errors import PersistenceError
from matchday.repositories.user_stats import StatsMutation, UserStatsRepo

_COLUMNS = (
    "user_id, total_points, total_predictions, correct_outcomes, exact_scores, "
    "current_streak, best_streak, accuracy, last_updated"
)


class UserStatsRepoSqlite(UserStatsRepo):
    """SQLite implementation of :class:`UserStatsRepo`.

    ``update`` holds a per-user lock for the whole read-modify-write and runs it
    inside an immediate transaction, so two evaluations for the same user never
    overwrite each other. The connection may be shared across threads, so every
    statement also runs under one repository-wide lock.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()
        self._conn_lock = threading.RLock()
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS user_stats (
                user_id TEXT PRIMARY KEY,
                total_points INTEGER NOT NULL DEFAULT 0,
                total_predictions INTEGER NOT NULL DEFAULT 0,
                correct_outcomes INTEGER NOT NULL DEFAULT 0,
                exact_scores INTEGER NOT NULL DEFAULT 0,
                current_streak INTEGER NOT NULL DEFAULT 0,
                best_streak INTEGER NOT NULL DEFAULT 0,
                accuracy REAL NOT NULL DEFAULT 0,
                last_updated TEXT,
                CHECK (best_streak >= current_streak)
            )
            """
        )
        self._conn.commit()

    def get(self, user_id: str) -> Optional[UserStatistics]:
        with self._conn_lock:
            cur = self._conn.execute(
                f"SELECT {_COLUMNS} FROM user_stats WHERE user_id = ?", (user_id,)
            )
            row = cur.fetchone()
        return _row_to_stats(row) if row else None

    def update(self, user_id: str, mutate: StatsMutation) -> UserStatistics:
        with self._lock_for(user_id), self._conn_lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise PersistenceError(f"Failed to update statistics of {user_id}: {exc}") from exc
            try:
                updated = mutate(self.get(user_id))
                self._conn.execute(
                    f"""
                    INSERT OR REPLACE INTO user_stats ({_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user_id,
                        updated.total_points,
                        updated.total_predictions,
                        updated.correct_outcomes,
                        updated.exact_scores,
                        updated.current_streak,
                        updated.best_streak,
                        updated.accuracy,
                        updated.last_updated.isoformat() if updated.last_updated else None,
                    ),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise PersistenceError(f"Failed to update statistics of {user_id}: {exc}") from exc
            except Exception:
                self._conn.rollback()
                raise
        return updated

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[user_id]


def _row_to_stats(row: Sequence[Any]) -> UserStatistics:
    return UserStatistics(
        user_id=row[0],
        total_points=row[1],
        total_predictions=row[2],
        correct_outcomes=row[3],
        exact_scores=row[4],
        current_streak=row[5],
        best_streak=row[6],
        accuracy=row[7],
        last_updated=row[8],
    )
