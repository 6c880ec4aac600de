from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from matchday.domain.value_objects.enums import LeaderboardPeriod, RecentForm, Trend


class LeagueStats(BaseModel):
    """League-scoped statistics rebuilt from a user's scored predictions."""

    total_points: int = 0
    total_predictions: int = 0
    correct_outcomes: int = 0
    exact_scores: int = 0
    correct_scorers: int = 0
    current_streak: int = 0
    best_streak: int = 0
    last_match_points: int = 0
    accuracy: int = 0
    average_points_per_match: float = 0.0

    model_config = ConfigDict(frozen=True)


class LeaderboardEntry(BaseModel):
    league_id: str
    period: LeaderboardPeriod = LeaderboardPeriod.OVERALL
    user_id: str
    total_points: int = 0
    total_predictions: int = 0
    accuracy: float = 0
    exact_scores: int = 0
    correct_outcomes: int = 0
    correct_scorers: int = 0
    current_streak: int = 0
    best_streak: int = 0
    last_match_points: int = 0
    average_points_per_match: float = 0.0
    rank: int = 1
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_stats(
        cls,
        league_id: str,
        period: LeaderboardPeriod,
        user_id: str,
        stats: LeagueStats,
    ) -> "LeaderboardEntry":
        return cls(league_id=league_id, period=period, user_id=user_id, **stats.model_dump())


class RankedEntry(LeaderboardEntry):
    """Leaderboard row with derived display fields."""

    points_from_first: int = 0
    trend: Trend = Trend.SAME
    is_top_performer: bool = False
    recent_form: RecentForm = RecentForm.POOR


class UserPosition(LeaderboardEntry):
    total_members: int
    percentile: int


class LeaderboardSummary(BaseModel):
    total_players: int = 0
    total_predictions: int = 0
    average_accuracy: int = 0
