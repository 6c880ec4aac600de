from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

import pytest

import matchday.cli.leaderboard as leaderboard_cli
from matchday.application.context import AppContext, build_context
from matchday.domain.entities.leaderboard import LeaderboardEntry
from matchday.domain.entities.prediction import Evaluation, Prediction
from matchday.domain.value_objects.enums import PredictionStatus

T0 = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class _NoClient:
    def get(self, path: str, params: object = None) -> object:  # pragma: no cover
        raise AssertionError("no provider calls expected")


@pytest.fixture
def ctx(monkeypatch: pytest.MonkeyPatch) -> AppContext:
    context = build_context(conn=sqlite3.connect(":memory:"), client=_NoClient())
    for user, points in (("alice", 4), ("bob", 1), ("carol", 0)):
        context.predictions.upsert(
            Prediction(
                user_id=user,
                match_id="m1",
                home_score=1,
                away_score=0,
                status=PredictionStatus.SCORED,
                points=points,
                evaluation=Evaluation(points=points, correct_outcome=points > 0),
                created_at=T0,
                updated_at=T0,
                evaluated_at=T0,
            )
        )
    # The CLI closes the context; keep the in-memory database alive for assertions
    monkeypatch.setattr(context, "close", lambda: None)
    monkeypatch.setattr(leaderboard_cli, "build_context", lambda: context)
    monkeypatch.setattr(leaderboard_cli, "get_logger", lambda level: None)
    return context


def test_recalculate_and_print(ctx: AppContext, capsys: pytest.CaptureFixture[str]) -> None:
    assert leaderboard_cli.main(["--recalculate"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0].split()[:2] == ["#", "user"]
    assert "alice" in lines[1] and "bob" in lines[2] and "carol" in lines[3]
    assert lines[1].lstrip().startswith("1*")


def test_empty_leaderboard(ctx: AppContext, capsys: pytest.CaptureFixture[str]) -> None:
    assert leaderboard_cli.main(["--period", "weekly"]) == 0
    assert "Leaderboard is empty." in capsys.readouterr().out


def test_user_position(ctx: AppContext, capsys: pytest.CaptureFixture[str]) -> None:
    assert leaderboard_cli.main(["--recalculate", "--user", "bob"]) == 0
    assert "bob: rank 2/3, 1 pts, percentile 67" in capsys.readouterr().out

    assert leaderboard_cli.main(["--user", "zed"]) == 1
    assert "zed is not on the general leaderboard." in capsys.readouterr().out


def test_invalid_period_rejected() -> None:
    with pytest.raises(SystemExit):
        leaderboard_cli.build_parser().parse_args(["--period", "daily"])


def test_join_league_appends_member_entry(
    ctx: AppContext, monkeypatch: pytest.MonkeyPatch
) -> None:
    seeded: list[tuple[str, str]] = []
    original = ctx.leaderboard.initialize_member

    def counting(league_id: str, user_id: str) -> LeaderboardEntry:
        seeded.append((league_id, user_id))
        return original(league_id, user_id)

    monkeypatch.setattr(ctx.leaderboard, "initialize_member", counting)
    ctx.leagues.create_league("l1", "Friends")
    first = ctx.join_league("l1", "alice")
    second = ctx.join_league("l1", "bob")
    assert first is not None and second is not None
    assert (first.rank, second.rank) == (1, 2)
    assert seeded == [("l1", "alice"), ("l1", "bob")]
    assert ctx.leagues.get_member_ids("l1") == ["alice", "bob"]
    again = ctx.join_league("l1", "alice")
    assert again is not None and (again.user_id, again.rank) == ("alice", 1)
