from matchday.domain.entities.achievement import (
    AchievementContext,
    AchievementDefinition,
    AchievementRecord,
    AchievementSummary,
    AchievementView,
)
from matchday.domain.entities.leaderboard import (
    LeaderboardEntry,
    LeaderboardSummary,
    LeagueStats,
    RankedEntry,
    UserPosition,
)
from matchday.domain.entities.match import Match, MatchResult, Score, TeamRef
from matchday.domain.entities.prediction import Evaluation, Prediction
from matchday.domain.entities.statistics import StatisticsReport, UserStatistics

__all__ = [
    "AchievementContext",
    "AchievementDefinition",
    "AchievementRecord",
    "AchievementSummary",
    "AchievementView",
    "Evaluation",
    "LeaderboardEntry",
    "LeaderboardSummary",
    "LeagueStats",
    "Match",
    "MatchResult",
    "Prediction",
    "RankedEntry",
    "Score",
    "StatisticsReport",
    "TeamRef",
    "UserPosition",
    "UserStatistics",
]
