from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from matchday.config.settings import RESULT_CACHE_TTL_HOURS
from matchday.domain.entities._time import utcnow
from matchday.domain.entities.match import MatchResult
from matchday.logging_config import CacheStats
from matchday.repositories.match_results import MatchResultsRepo

logger = logging.getLogger(__name__)

# Backing stores accept at most this many keys in one "IN" query.
MAX_BATCH_KEYS = 10
_STAMP_FIELDS = ("match_id", "cached_at", "last_updated")


class ResultCache:
    """Cache-aside store of finalized match results.

    - Entries are stamped with ``cached_at`` on ``put``; an entry older than the
      TTL (24 h by default) or without a stamp is reported as a miss.
    - ``put`` merges into the stored entry: fields the incoming result leaves
      empty keep their cached values. Concurrent puts are last write wins.
    - ``get_stale`` ignores the TTL and exists only for failure fallbacks.
    """

    def __init__(
        self,
        repo: MatchResultsRepo,
        *,
        ttl_hours: float = RESULT_CACHE_TTL_HOURS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repo = repo
        self._ttl = timedelta(hours=ttl_hours)
        self._clock = clock or utcnow
        self.stats = CacheStats("match_results")

    def is_fresh(self, result: MatchResult) -> bool:
        if result.cached_at is None:
            return False
        return self._clock() - result.cached_at < self._ttl

    def get(self, match_id: str) -> Optional[MatchResult]:
        result = self._repo.get(match_id)
        if result is None or not self.is_fresh(result):
            self.stats.record_miss()
            return None
        self.stats.record_hit()
        return result

    def get_stale(self, match_id: str) -> Optional[MatchResult]:
        return self._repo.get(match_id)

    def put(self, match_id: str, result: MatchResult) -> MatchResult:
        now = self._clock()
        existing = self._repo.get(match_id)
        update = {
            name: value
            for name, value in result
            if name not in _STAMP_FIELDS and value not in (None, "", ())
        }
        update.update(match_id=match_id, cached_at=now, last_updated=now)
        stamped = (existing or result).model_copy(update=update)
        self._repo.upsert(stamped)
        logger.debug("Cached match result", extra={"match_id": match_id})
        return stamped

    def get_many(self, match_ids: Iterable[str]) -> dict[str, MatchResult]:
        ids = list(dict.fromkeys(str(m) for m in match_ids))
        found: dict[str, MatchResult] = {}
        for start in range(0, len(ids), MAX_BATCH_KEYS):
            chunk = ids[start : start + MAX_BATCH_KEYS]
            for match_id, result in self._repo.get_many(chunk).items():
                if self.is_fresh(result):
                    found[match_id] = result
        for match_id in ids:
            if match_id in found:
                self.stats.record_hit()
            else:
                self.stats.record_miss()
        return found

    def recent(self, limit: int = 10) -> list[MatchResult]:
        return self._repo.list_recent(limit, cached_after=self._clock() - self._ttl)

    def clear_expired(self) -> int:
        removed = self._repo.delete_cached_before(self._clock() - self._ttl)
        if removed:
            logger.info("Cleared expired match results", extra={"removed": removed})
        return removed
