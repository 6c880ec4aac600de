from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from matchday.application.services.result_cache import MAX_BATCH_KEYS, ResultCache
from matchday.domain.entities.match import MatchResult, Score
from matchday.repositories.sqlite.match_results_sqlite import MatchResultsRepoSqlite

T0 = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class _CountingRepo(MatchResultsRepoSqlite):
    def __init__(self, conn: sqlite3.Connection) -> None:
        super().__init__(conn)
        self.batches: list[list[str]] = []

    def get_many(self, match_ids: Sequence[str]) -> dict[str, MatchResult]:
        self.batches.append(list(match_ids))
        return super().get_many(match_ids)


def _result(match_id: str, home: int = 2, away: int = 1) -> MatchResult:
    return MatchResult(
        match_id=match_id,
        final_score=Score(home=home, away=away),
        home_team="Galatasaray",
        away_team="Fenerbahce",
        competition="Turkish Super Lig",
        scorers=("Icardi",),
    )


def _cache(clock: Optional[_Clock] = None) -> tuple[ResultCache, _CountingRepo, _Clock]:
    clock = clock or _Clock(T0)
    repo = _CountingRepo(sqlite3.connect(":memory:"))
    return ResultCache(repo, clock=clock), repo, clock


def test_put_stamps_and_get_hits() -> None:
    cache, _, _ = _cache()
    stored = cache.put("100", _result("100"))
    assert stored.cached_at == T0 and stored.last_updated == T0

    hit = cache.get("100")
    assert hit is not None
    assert hit.final_score == Score(home=2, away=1)
    assert hit.scorers == ("Icardi",)
    assert cache.stats.hits == 1 and cache.stats.misses == 0


def test_entry_older_than_24h_is_a_miss() -> None:
    cache, _, clock = _cache()
    cache.put("100", _result("100"))

    clock.now = T0 + timedelta(hours=23, minutes=59)
    assert cache.get("100") is not None

    clock.now = T0 + timedelta(hours=25)
    assert cache.get("100") is None
    assert cache.stats.misses == 1
    # The stale copy is still reachable for failure fallbacks
    stale = cache.get_stale("100")
    assert stale is not None and stale.match_id == "100"


def test_put_is_last_write_wins() -> None:
    cache, _, _ = _cache()
    cache.put("100", _result("100", 1, 1))
    cache.put("100", _result("100", 3, 0))
    hit = cache.get("100")
    assert hit is not None and hit.final_score == Score(home=3, away=0)


def test_put_merges_over_the_stored_entry() -> None:
    cache, _, clock = _cache()
    detailed = _result("100").model_copy(update={"venue": "Rams Park"})
    cache.put("100", detailed)

    clock.now = T0 + timedelta(hours=1)
    sparse = MatchResult(match_id="100", final_score=Score(home=2, away=1), home_team="Galatasaray")
    merged = cache.put("100", sparse)

    assert merged.scorers == ("Icardi",)
    assert merged.venue == "Rams Park"
    assert merged.competition == "Turkish Super Lig"
    assert merged.away_team == "Fenerbahce"
    assert merged.cached_at == clock.now and merged.last_updated == clock.now
    hit = cache.get("100")
    assert hit is not None and hit.scorers == ("Icardi",) and hit.venue == "Rams Park"


def test_get_many_reads_in_chunks_of_ten() -> None:
    cache, repo, _ = _cache()
    ids = [str(i) for i in range(23)]
    for match_id in ids[:20]:
        cache.put(match_id, _result(match_id))

    found = cache.get_many(ids + ["0", "1"])

    assert set(found) == set(ids[:20])
    assert [len(b) for b in repo.batches] == [10, 10, 3]
    assert all(len(b) <= MAX_BATCH_KEYS for b in repo.batches)
    assert cache.stats.hits == 20 and cache.stats.misses == 3


def test_get_many_skips_expired_entries() -> None:
    cache, _, clock = _cache()
    cache.put("old", _result("old"))
    clock.now = T0 + timedelta(hours=20)
    cache.put("new", _result("new"))
    clock.now = T0 + timedelta(hours=25)

    assert set(cache.get_many(["old", "new"])) == {"new"}


def test_recent_and_clear_expired() -> None:
    cache, _, clock = _cache()
    cache.put("a", _result("a"))
    clock.now = T0 + timedelta(hours=2)
    cache.put("b", _result("b"))
    clock.now = T0 + timedelta(hours=3)
    cache.put("c", _result("c"))

    assert [r.match_id for r in cache.recent(2)] == ["c", "b"]

    clock.now = T0 + timedelta(hours=25)
    assert [r.match_id for r in cache.recent()] == ["c", "b"]

    assert cache.clear_expired() == 1
    assert cache.get_stale("a") is None
    assert cache.get_stale("b") is not None
