from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence, TypedDict

from matchday.domain.entities.match import MatchResult
from matchday.errors import APIError
from matchday.application.services.result_cache import ResultCache
from matchday.application.services.result_gateway import ResultIngestionGateway
from matchday.application.services.scoring_service import ProcessResult, ScoringEngine

logger = logging.getLogger(__name__)

DEFAULT_RECENT_MATCHES = 10


class RecentResultsSummary(TypedDict):
    updated: int
    processed: int
    errors: int


class MatchResultsService:
    """Result lookups through the cache, with the provider as the fallback source.

    A failed provider call degrades to the last cached (possibly expired) entry
    when one exists.
    """

    def __init__(
        self,
        cache: ResultCache,
        gateway: ResultIngestionGateway,
        scoring: ScoringEngine,
        *,
        max_api_calls: Optional[int] = None,
    ) -> None:
        self._cache = cache
        self._gateway = gateway
        self._scoring = scoring
        self._max_api_calls = max_api_calls

    def fetch_match_result(self, match_id: str, force_refresh: bool = False) -> Optional[MatchResult]:
        if not force_refresh:
            cached = self._cache.get(match_id)
            if cached is not None:
                return cached
        try:
            result = self._gateway.get_event_result(match_id)
        except APIError as exc:
            stale = self._cache.get_stale(match_id)
            if stale is None:
                raise
            logger.warning(
                "Serving stale result after fetch failure",
                extra={"match_id": match_id, "error": str(exc)},
            )
            return stale
        if result is None:
            return None
        return self._cache.put(match_id, result)

    def fetch_multiple_results(
        self,
        match_ids: Iterable[str],
        force_refresh: bool = False,
        max_api_calls: Optional[int] = None,
    ) -> dict[str, MatchResult]:
        ids = list(dict.fromkeys(str(m) for m in match_ids))
        found = {} if force_refresh else self._cache.get_many(ids)
        missing = [m for m in ids if m not in found]
        if not missing:
            return found

        budget = max_api_calls if max_api_calls is not None else self._max_api_calls
        try:
            fetched = self._gateway.fetch_event_results(missing, budget)
        except APIError as exc:
            logger.warning("Bulk result fetch failed", extra={"error": str(exc)})
            fetched = {}

        for match_id in missing:
            result = fetched.get(match_id)
            if result is not None:
                found[match_id] = self._cache.put(match_id, result)
                continue
            stale = self._cache.get_stale(match_id)
            if stale is not None:
                found[match_id] = stale
            else:
                logger.debug("No result available", extra={"match_id": match_id})
        self._cache.stats.log_hit_rate()
        return found

    def process_match_result(self, match_id: str, result: MatchResult) -> ProcessResult:
        return self._scoring.process_match_result(match_id, result)

    def update_recent_results(
        self,
        max_matches: int = DEFAULT_RECENT_MATCHES,
        competitions: Optional[Sequence[str]] = None,
    ) -> RecentResultsSummary:
        """Cache the latest finished results and score every affected prediction."""
        try:
            finished = self._gateway.get_finished_matches(competitions, limit=max_matches)
        except APIError as exc:
            logger.error("Could not load finished matches", extra={"error": str(exc)})
            return RecentResultsSummary(updated=0, processed=0, errors=1)

        updated = processed = errors = 0
        for result in finished:
            try:
                stored = self._cache.put(result.match_id, result)
                updated += 1
                processed += self._scoring.process_match_result(result.match_id, stored)["processed"]
            except Exception:
                errors += 1
                logger.exception("Result update failed", extra={"match_id": result.match_id})

        logger.info(
            "Recent results updated",
            extra={"updated": updated, "processed": processed, "errors": errors},
        )
        return RecentResultsSummary(updated=updated, processed=processed, errors=errors)
