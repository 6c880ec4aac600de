from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from matchday.domain.value_objects.enums import AchievementCategory, Rarity
from matchday.domain.entities.statistics import StatisticsReport, UserStatistics, WeeklyBreakdown


@dataclass(frozen=True)
class AchievementContext:
    """Flattened statistics an achievement rule is evaluated against."""

    total_predictions: int = 0
    correct_outcomes: int = 0
    accuracy: float = 0.0
    exact_scores: int = 0
    current_streak: int = 0
    best_streak: int = 0
    total_points: int = 0
    leagues_joined: int = 0
    league_wins: int = 0
    consecutive_days: int = 0
    days_active: int = 0
    weekly: tuple[WeeklyBreakdown, ...] = field(default_factory=tuple)

    @classmethod
    def from_stats(cls, stats: UserStatistics) -> "AchievementContext":
        base = dict(
            total_predictions=stats.total_predictions,
            correct_outcomes=stats.correct_outcomes,
            accuracy=float(stats.accuracy),
            exact_scores=stats.exact_scores,
            current_streak=stats.current_streak,
            best_streak=stats.best_streak,
            total_points=stats.total_points,
        )
        if isinstance(stats, StatisticsReport):
            base.update(
                leagues_joined=stats.leagues_joined,
                league_wins=stats.league_wins,
                consecutive_days=stats.consecutive_days,
                days_active=stats.days_active,
                weekly=tuple(stats.weekly_breakdown),
            )
        return cls(**base)  # type: ignore[arg-type]


Predicate = Callable[[AchievementContext], bool]
ProgressFn = Callable[[AchievementContext], float]
RequirementFn = Callable[[AchievementContext], str]


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    title: str
    description: str
    category: AchievementCategory
    rarity: Rarity
    points: int
    predicate: Predicate
    progress: Optional[ProgressFn] = None
    requirement: Optional[RequirementFn] = None

    def progress_for(self, ctx: AchievementContext) -> float:
        if self.progress is None:
            return 0.0
        value = float(self.progress(ctx))
        return max(0.0, min(100.0, value))

    def requirement_for(self, ctx: AchievementContext) -> str:
        if self.requirement is None:
            return "Complete the required action"
        return self.requirement(ctx)


class AchievementRecord(BaseModel):
    """Stored per-user state of one achievement."""

    achievement_id: str
    unlocked: bool = False
    unlocked_date: Optional[datetime] = None
    progress: float = Field(0.0, ge=0, le=100)

    model_config = ConfigDict(frozen=True)


class AchievementView(BaseModel):
    id: str
    title: str
    description: str
    category: AchievementCategory
    rarity: Rarity
    points: int
    unlocked: bool = False
    unlocked_date: Optional[datetime] = None
    progress: float = 0.0
    requirement: Optional[str] = None
    time_ago: Optional[str] = None

    @classmethod
    def from_definition(
        cls, definition: AchievementDefinition, **state: object
    ) -> "AchievementView":
        return cls(
            id=definition.id,
            title=definition.title,
            description=definition.description,
            category=definition.category,
            rarity=definition.rarity,
            points=definition.points,
            **state,  # type: ignore[arg-type]
        )


class AchievementSummary(BaseModel):
    achievements: list[AchievementView] = Field(default_factory=list)
    unlocked: int = 0
    total: int = 0
    points: int = 0
    rare: int = 0
    recent: list[AchievementView] = Field(default_factory=list)
    newly_unlocked: list[AchievementView] = Field(default_factory=list)
    last_calculated: Optional[datetime] = None
