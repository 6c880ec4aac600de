from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from typing import Any, Optional, Sequence

from matchday.domain.entities._time import utcnow
from matchday.domain.entities.prediction import Prediction
from matchday.domain.value_objects.enums import PredictionStatus
from matchday.errors import PersistenceError
from matchday.repositories.predictions import PredictionsRepo

_COLUMNS = (
    "user_id, match_id, home_score, away_score, scorers, status, points, "
    "evaluation, result, created_at, updated_at, evaluated_at"
)


class PredictionsRepoSqlite(PredictionsRepo):
    """SQLite implementation of :class:`PredictionsRepo`."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS predictions (
                prediction_key TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                match_id TEXT NOT NULL,
                home_score INTEGER,
                away_score INTEGER,
                scorers TEXT NOT NULL DEFAULT '[]',
                status TEXT NOT NULL DEFAULT 'pending' CHECK(status IN ('pending','scored')),
                points INTEGER NOT NULL DEFAULT 0,
                evaluation TEXT,
                result TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                evaluated_at TEXT
            )
            """
        )
        self._conn.execute(
            "CREATE INDEX IF NOT EXISTS ix_predictions_match ON predictions(match_id, status)"
        )
        self._conn.execute(
            "CREATE INDEX IF NOT EXISTS ix_predictions_user ON predictions(user_id, created_at)"
        )
        self._conn.commit()

    def get(self, user_id: str, match_id: str) -> Optional[Prediction]:
        cur = self._conn.execute(
            f"SELECT {_COLUMNS} FROM predictions WHERE prediction_key = ?",
            (f"{user_id}_{match_id}",),
        )
        row = cur.fetchone()
        return _row_to_prediction(row) if row else None

    def upsert(
        self, prediction: Prediction, *, kickoff_time: Optional[datetime] = None
    ) -> None:
        if kickoff_time is not None and utcnow() >= kickoff_time:
            raise ValueError(f"Prediction {prediction.key} is locked since kickoff")
        try:
            with self._conn:
                cur = self._conn.execute(
                    f"""
                    INSERT INTO predictions (prediction_key, {_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(prediction_key) DO UPDATE SET
                        home_score=excluded.home_score,
                        away_score=excluded.away_score,
                        scorers=excluded.scorers,
                        updated_at=excluded.updated_at
                    WHERE predictions.status != 'scored'
                    """,
                    (prediction.key, *_prediction_to_row(prediction)),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to save prediction {prediction.key}: {exc}") from exc
        if cur.rowcount == 0:
            raise ValueError(f"Prediction {prediction.key} is already scored")

    def list_unscored_for_match(self, match_id: str) -> list[Prediction]:
        cur = self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM predictions
            WHERE match_id = ? AND status != 'scored'
            ORDER BY created_at
            """,
            (match_id,),
        )
        return [_row_to_prediction(r) for r in cur.fetchall()]

    def list_for_user(self, user_id: str, *, scored_only: bool = False) -> list[Prediction]:
        sql = f"SELECT {_COLUMNS} FROM predictions WHERE user_id = ?"
        if scored_only:
            sql += " AND status = 'scored'"
        cur = self._conn.execute(sql + " ORDER BY created_at", (user_id,))
        return [_row_to_prediction(r) for r in cur.fetchall()]

    def list_user_ids(self) -> list[str]:
        cur = self._conn.execute("SELECT DISTINCT user_id FROM predictions ORDER BY user_id")
        return [str(r[0]) for r in cur.fetchall()]

    def apply_scores(self, scored: Sequence[Prediction]) -> list[Prediction]:
        written: list[Prediction] = []
        try:
            with self._conn:
                for p in scored:
                    cur = self._conn.execute(
                        """
                        UPDATE predictions
                        SET status = ?, points = ?, evaluation = ?, result = ?,
                            evaluated_at = ?, updated_at = ?
                        WHERE prediction_key = ? AND status != 'scored'
                        """,
                        (
                            PredictionStatus.SCORED.value,
                            p.points,
                            p.evaluation.model_dump_json() if p.evaluation else None,
                            p.result.model_dump_json() if p.result else None,
                            p.evaluated_at.isoformat() if p.evaluated_at else None,
                            p.updated_at.isoformat(),
                            p.key,
                        ),
                    )
                    if cur.rowcount:
                        written.append(p)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to commit scoring batch: {exc}") from exc
        return written


def _prediction_to_row(p: Prediction) -> tuple[Any, ...]:
    return (
        p.user_id,
        p.match_id,
        p.home_score,
        p.away_score,
        json.dumps(list(p.scorers), ensure_ascii=False),
        p.status.value,
        p.points,
        p.evaluation.model_dump_json() if p.evaluation else None,
        p.result.model_dump_json() if p.result else None,
        p.created_at.isoformat(),
        p.updated_at.isoformat(),
        p.evaluated_at.isoformat() if p.evaluated_at else None,
    )


def _row_to_prediction(row: Sequence[Any]) -> Prediction:
    return Prediction(
        user_id=row[0],
        match_id=row[1],
        home_score=row[2],
        away_score=row[3],
        scorers=json.loads(row[4] or "[]"),
        status=row[5],
        points=int(row[6] or 0),
        evaluation=json.loads(row[7]) if row[7] else None,
        result=json.loads(row[8]) if row[8] else None,
        created_at=row[9],
        updated_at=row[10],
        evaluated_at=row[11],
    )
