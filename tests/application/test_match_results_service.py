from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pytest

from matchday.application.services.match_results_service import MatchResultsService
from matchday.application.services.result_cache import ResultCache
from matchday.application.services.scoring_service import ScoringEngine
from matchday.application.services.statistics_aggregator import StatisticsAggregator
from matchday.domain.entities.match import MatchResult, Score
from matchday.domain.entities.prediction import Prediction
from matchday.errors import APIError, NetworkError
from matchday.repositories.sqlite.match_results_sqlite import MatchResultsRepoSqlite
from matchday.repositories.sqlite.predictions_sqlite import PredictionsRepoSqlite
from matchday.repositories.sqlite.user_stats_sqlite import UserStatsRepoSqlite

T0 = datetime(2025, 3, 10, 20, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _result(match_id: str, home: int = 1, away: int = 0) -> MatchResult:
    return MatchResult(
        match_id=match_id,
        final_score=Score(home=home, away=away),
        competition="Turkish Super Lig",
        kickoff_time=T0 - timedelta(hours=2),
    )


class _FakeGateway:
    def __init__(self, results: Dict[str, MatchResult], fail: Optional[Exception] = None) -> None:
        self.results = results
        self.fail = fail
        self.single_calls: List[str] = []
        self.bulk_calls: List[tuple[list[str], Optional[int]]] = []
        self.finished_calls: List[tuple[Optional[Sequence[str]], Optional[int]]] = []

    def get_event_result(self, match_id: str) -> Optional[MatchResult]:
        self.single_calls.append(match_id)
        if self.fail:
            raise self.fail
        return self.results.get(match_id)

    def fetch_event_results(
        self, match_ids: Iterable[str], max_api_calls: Optional[int] = None
    ) -> dict[str, MatchResult]:
        ids = list(match_ids)
        self.bulk_calls.append((ids, max_api_calls))
        if self.fail:
            raise self.fail
        budget = len(ids) if max_api_calls is None else max_api_calls
        return {m: self.results[m] for m in ids[:budget] if m in self.results}

    def get_finished_matches(
        self, competitions: Optional[Sequence[str]] = None, limit: Optional[int] = None
    ) -> list[MatchResult]:
        self.finished_calls.append((competitions, limit))
        if self.fail:
            raise self.fail
        return list(self.results.values())[:limit]


class _Env:
    def __init__(self, gateway: _FakeGateway) -> None:
        conn = sqlite3.connect(":memory:")
        self.clock = _Clock(T0)
        self.cache = ResultCache(MatchResultsRepoSqlite(conn), clock=self.clock)
        self.predictions = PredictionsRepoSqlite(conn)
        self.stats = UserStatsRepoSqlite(conn)
        scoring = ScoringEngine(
            self.predictions, StatisticsAggregator(self.stats, clock=self.clock), clock=self.clock
        )
        self.gateway = gateway
        self.service = MatchResultsService(self.cache, gateway, scoring, max_api_calls=5)  # type: ignore[arg-type]

    def predict(self, user_id: str, match_id: str, home: int, away: int) -> None:
        self.predictions.upsert(
            Prediction(
                user_id=user_id,
                match_id=match_id,
                home_score=home,
                away_score=away,
                created_at=T0 - timedelta(days=1),
                updated_at=T0 - timedelta(days=1),
            )
        )


def test_fetch_match_result_is_cache_aside() -> None:
    env = _Env(_FakeGateway({"1": _result("1")}))

    first = env.service.fetch_match_result("1")
    second = env.service.fetch_match_result("1")

    assert first is not None and second is not None
    assert second.cached_at == T0
    assert env.gateway.single_calls == ["1"]

    env.service.fetch_match_result("1", force_refresh=True)
    assert env.gateway.single_calls == ["1", "1"]


def test_fetch_match_result_unfinished_is_not_cached() -> None:
    env = _Env(_FakeGateway({}))
    assert env.service.fetch_match_result("404") is None
    assert env.cache.get_stale("404") is None


def test_fetch_falls_back_to_stale_entry() -> None:
    gateway = _FakeGateway({"1": _result("1")})
    env = _Env(gateway)
    env.service.fetch_match_result("1")

    env.clock.now = T0 + timedelta(hours=30)
    gateway.fail = NetworkError("offline")
    stale = env.service.fetch_match_result("1")

    assert stale is not None and stale.cached_at == T0


def test_fetch_without_stale_entry_propagates() -> None:
    env = _Env(_FakeGateway({}, fail=NetworkError("offline")))
    with pytest.raises(NetworkError):
        env.service.fetch_match_result("1")


def test_fetch_multiple_uses_cache_then_budgeted_bulk_fetch() -> None:
    results = {str(i): _result(str(i)) for i in range(8)}
    env = _Env(_FakeGateway(results))
    env.cache.put("0", results["0"])

    found = env.service.fetch_multiple_results([str(i) for i in range(8)])

    assert set(found) == {"0", "1", "2", "3", "4", "5"}
    ids, budget = env.gateway.bulk_calls[0]
    assert ids == ["1", "2", "3", "4", "5", "6", "7"]
    assert budget == 5
    assert env.cache.get("5") is not None
    assert env.cache.stats.hits >= 1


def test_fetch_multiple_reports_instead_of_raising() -> None:
    gateway = _FakeGateway({"1": _result("1")})
    env = _Env(gateway)
    env.cache.put("1", _result("1"))
    env.clock.now = T0 + timedelta(hours=30)
    gateway.fail = APIError("bad gateway")

    found = env.service.fetch_multiple_results(["1", "2"], max_api_calls=2)

    # Expired entry served as a fallback, unknown id omitted
    assert list(found) == ["1"]
    assert gateway.bulk_calls == [(["1", "2"], 2)]


def test_update_recent_results_caches_and_scores() -> None:
    gateway = _FakeGateway({"1": _result("1", 2, 0), "2": _result("2", 1, 1)})
    env = _Env(gateway)
    env.predict("alice", "1", 2, 0)
    env.predict("bob", "1", 0, 1)
    env.predict("alice", "2", 1, 1)

    summary = env.service.update_recent_results(max_matches=10, competitions=["turkish-super-league"])

    assert summary == {"updated": 2, "processed": 3, "errors": 0}
    assert gateway.finished_calls == [(["turkish-super-league"], 10)]
    assert env.cache.get("1") is not None
    alice = env.stats.get("alice")
    assert alice is not None and alice.total_points == 6

    # A second run caches again but scores nothing twice
    assert env.service.update_recent_results()["processed"] == 0


def test_update_recent_results_reports_provider_failure() -> None:
    env = _Env(_FakeGateway({}, fail=APIError("down")))
    assert env.service.update_recent_results() == {"updated": 0, "processed": 0, "errors": 1}


def test_update_recent_results_counts_per_match_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    env = _Env(_FakeGateway({"1": _result("1"), "2": _result("2")}))
    real_put = env.cache.put

    def flaky_put(match_id: str, result: MatchResult) -> MatchResult:
        if match_id == "1":
            raise RuntimeError("disk full")
        return real_put(match_id, result)

    monkeypatch.setattr(env.cache, "put", flaky_put)
    summary = env.service.update_recent_results()
    assert summary == {"updated": 1, "processed": 0, "errors": 1}


def test_process_match_result_delegates_to_scoring() -> None:
    env = _Env(_FakeGateway({}))
    env.predict("alice", "9", 3, 1)
    out: Any = env.service.process_match_result("9", _result("9", 3, 1))
    assert out == {"processed": 1, "stats_failures": 0}
