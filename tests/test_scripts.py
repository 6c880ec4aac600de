from __future__ import annotations

import importlib.util
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import ModuleType
from typing import Any, Mapping

from matchday.application.context import build_context
from matchday.domain.entities.prediction import Prediction

ROOT = Path(__file__).resolve().parents[1]


def _load(name: str) -> ModuleType:
    spec = importlib.util.spec_from_file_location(f"{name}_script", ROOT / "scripts" / f"{name}.py")
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class _FakeClient:
    def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        if path == "eventspastleague.php" and (params or {}).get("id") == "4339":
            return {
                "events": [
                    {
                        "idEvent": "441613",
                        "idLeague": "4339",
                        "strLeague": "Turkish Super Lig",
                        "strHomeTeam": "Galatasaray",
                        "strAwayTeam": "Fenerbahce",
                        "intHomeScore": "2",
                        "intAwayScore": "1",
                        "strHomeGoalDetails": "12':Icardi;80':Mertens",
                        "strAwayGoalDetails": "55':Dzeko",
                        "dateEvent": "2025-03-09",
                        "strTime": "17:00:00",
                        "strStatus": "Match Finished",
                    }
                ]
            }
        return {"events": None}


def test_init_db_creates_every_table(tmp_path: Path) -> None:
    init_db = _load("init_db")
    db = tmp_path / "data" / "md.sqlite3"
    assert init_db.main(["--db", str(db)]) == 0

    conn = sqlite3.connect(db)
    tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    conn.close()
    assert {
        "predictions",
        "match_results",
        "user_stats",
        "leaderboard_entries",
        "user_achievements",
        "leagues",
        "league_members",
    } <= tables


def test_daily_pipeline_end_to_end() -> None:
    pipeline = _load("daily_pipeline")
    ctx = build_context(conn=sqlite3.connect(":memory:"), client=_FakeClient())
    created = datetime.now(timezone.utc) - timedelta(days=1)
    ctx.leagues.create_league("l1", "Friends", ["Turkish Super Lig"])
    for user, home, away, scorers in (
        ("alice", 2, 1, ("Icardi",)),
        ("bob", 0, 1, ("Dzeko",)),
    ):
        ctx.leagues.add_member("l1", user)
        ctx.predictions.upsert(
            Prediction(
                user_id=user,
                match_id="441613",
                home_score=home,
                away_score=away,
                scorers=scorers,
                created_at=created,
                updated_at=created,
            )
        )

    totals = pipeline.run_pipeline(ctx, max_matches=5, competitions=["turkish-super-league"])

    assert totals["updated"] == 1
    assert totals["processed"] == 2
    assert totals["errors"] == 0
    assert totals["leaderboards"] == 2
    assert totals["achievements_unlocked"] >= 3

    board = ctx.get_enhanced_league_leaderboard("l1")
    assert [(r.user_id, r.total_points) for r in board] == [("alice", 4), ("bob", 1)]
    summary = ctx.get_user_achievement_data("alice")
    assert {"first_prediction", "first_exact_score", "league_master"} <= {
        a.id for a in summary.achievements if a.unlocked
    }

    # Running again is idempotent for scoring
    again = pipeline.run_pipeline(ctx, max_matches=5, competitions=["turkish-super-league"])
    assert again["processed"] == 0
    assert again["achievements_unlocked"] == 0
    ctx.close()
