from __future__ import annotations

import sqlite3
from typing import Iterable

from matchday.domain.entities.achievement import AchievementRecord
from matchday.errors import PersistenceError
from matchday.repositories.achievements import AchievementsRepo


class AchievementsRepoSqlite(AchievementsRepo):
    """SQLite implementation of :class:`AchievementsRepo`.

    The upsert keeps an existing unlock and its original date even if the
    incoming record is locked.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS user_achievements (
                user_id TEXT NOT NULL,
                achievement_id TEXT NOT NULL,
                unlocked INTEGER NOT NULL DEFAULT 0 CHECK(unlocked IN (0,1)),
                unlocked_date TEXT,
                progress REAL NOT NULL DEFAULT 0,
                last_updated TEXT DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (user_id, achievement_id)
            )
            """
        )
        self._conn.commit()

    def load(self, user_id: str) -> dict[str, AchievementRecord]:
        cur = self._conn.execute(
            """
            SELECT achievement_id, unlocked, unlocked_date, progress
            FROM user_achievements WHERE user_id = ?
            """,
            (user_id,),
        )
        return {
            str(r[0]): AchievementRecord(
                achievement_id=r[0],
                unlocked=bool(r[1]),
                unlocked_date=r[2],
                progress=r[3],
            )
            for r in cur.fetchall()
        }

    def save(self, user_id: str, records: Iterable[AchievementRecord]) -> None:
        rows = [
            (
                user_id,
                r.achievement_id,
                int(r.unlocked),
                r.unlocked_date.isoformat() if r.unlocked_date else None,
                r.progress,
            )
            for r in records
        ]
        try:
            with self._conn:
                self._conn.executemany(
                    """
                    INSERT INTO user_achievements
                        (user_id, achievement_id, unlocked, unlocked_date, progress)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(user_id, achievement_id) DO UPDATE SET
                        unlocked=MAX(user_achievements.unlocked, excluded.unlocked),
                        unlocked_date=COALESCE(user_achievements.unlocked_date, excluded.unlocked_date),
                        progress=CASE WHEN user_achievements.unlocked = 1
                                      THEN user_achievements.progress ELSE excluded.progress END,
                        last_updated=CURRENT_TIMESTAMP
                    """,
                    rows,
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to save achievements of {user_id}: {exc}") from exc
