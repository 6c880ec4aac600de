from __future__ import annotations

from typing import Optional, Protocol

from matchday.domain.entities.leaderboard import LeaderboardEntry


class LeagueDirectory(Protocol):
    """Read access to league membership and league competition scope."""

    def get_member_ids(self, league_id: str) -> list[str]:
        """Return user ids of the league members."""
        ...

    def get_competitions(self, league_id: str) -> Optional[list[str]]:
        """Return competition names the league is restricted to, ``None`` for all."""
        ...

    def count_user_leagues(self, user_id: str) -> int:
        """Return how many leagues ``user_id`` belongs to."""
        ...


class LeaderboardInitializer(Protocol):
    """Contract the league component calls when a member joins."""

    def initialize_member(self, league_id: str, user_id: str) -> LeaderboardEntry: ...
