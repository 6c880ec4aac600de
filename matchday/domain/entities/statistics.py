from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def accuracy_percent(correct: int, total: int) -> float:
    """Percentage of correct outcomes rounded to two decimals; 0 without predictions."""
    if total <= 0:
        return 0.0
    return round(correct / total * 100, 2)


class UserStatistics(BaseModel):
    """Global running totals for one user, maintained incrementally."""

    user_id: str
    total_points: int = 0
    total_predictions: int = 0
    correct_outcomes: int = 0
    exact_scores: int = 0
    current_streak: int = 0
    best_streak: int = 0
    accuracy: float = 0.0
    last_updated: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_streaks(self) -> "UserStatistics":
        if self.best_streak < self.current_streak:
            raise ValueError("best_streak must be >= current_streak")
        return self


class MonthlyPoint(BaseModel):
    month: str
    predictions: int = 0
    correct: int = 0


class TrendPoint(BaseModel):
    week: str
    accuracy: int = 0


class CompetitionShare(BaseModel):
    name: str
    value: int


class WeeklyBreakdown(BaseModel):
    """Scored predictions grouped by ISO week (used by week-based achievements)."""

    week: str
    total: int = 0
    correct: int = 0
    accuracy: float = 0.0


class StatisticsReport(UserStatistics):
    """``UserStatistics`` plus chart-ready breakdowns and activity figures."""

    correct_scorers: int = 0
    avg_points_per_match: float = 0.0
    leagues_joined: int = 0
    league_wins: int = 0
    global_rank: Optional[int] = None
    days_active: int = 0
    consecutive_days: int = 0
    monthly_data: list[MonthlyPoint] = Field(default_factory=list)
    accuracy_trend: list[TrendPoint] = Field(default_factory=list)
    competition_data: list[CompetitionShare] = Field(default_factory=list)
    weekly_breakdown: list[WeeklyBreakdown] = Field(default_factory=list)
    last_calculated: Optional[datetime] = None
