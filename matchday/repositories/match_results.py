from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Sequence

from matchday.domain.entities.match import MatchResult


class MatchResultsRepo(ABC):
    """Backing store of the result cache."""

    @abstractmethod
    def get(self, match_id: str) -> Optional[MatchResult]:
        """Return the stored result regardless of its age."""

    @abstractmethod
    def get_many(self, match_ids: Sequence[str]) -> dict[str, MatchResult]:
        """Return stored results for the given ids in a single query."""

    @abstractmethod
    def upsert(self, result: MatchResult) -> None:
        """Insert or overwrite the result for ``result.match_id``."""

    @abstractmethod
    def list_recent(
        self, limit: int, *, cached_after: Optional[datetime] = None
    ) -> list[MatchResult]:
        """Most recently updated results cached after ``cached_after``, newest first."""

    @abstractmethod
    def delete_cached_before(self, cutoff: datetime) -> int:
        """Delete entries cached before ``cutoff`` (or never stamped) and return the count."""
