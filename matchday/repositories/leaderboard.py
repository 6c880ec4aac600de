from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from matchday.domain.entities.leaderboard import LeaderboardEntry
from matchday.domain.value_objects.enums import LeaderboardPeriod


class LeaderboardRepo(ABC):
    """Repository interface for materialized leaderboard entries."""

    @abstractmethod
    def replace(
        self, league_id: str, period: LeaderboardPeriod, entries: Sequence[LeaderboardEntry]
    ) -> None:
        """Replace every entry of ``(league_id, period)`` in one transaction."""

    @abstractmethod
    def upsert(self, entry: LeaderboardEntry) -> None:
        """Insert or overwrite a single entry."""

    @abstractmethod
    def list_entries(self, league_id: str, period: LeaderboardPeriod) -> list[LeaderboardEntry]:
        """Entries of one league and period ordered by rank."""

    @abstractmethod
    def get(
        self, league_id: str, period: LeaderboardPeriod, user_id: str
    ) -> Optional[LeaderboardEntry]:
        """Return the entry of ``user_id``."""

    @abstractmethod
    def count_first_places(self, user_id: str, *, exclude_league: Optional[str] = None) -> int:
        """Number of overall leaderboards where ``user_id`` is ranked first."""
