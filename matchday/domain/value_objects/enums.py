from enum import Enum


class MatchStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    FINISHED = "FINISHED"
    POSTPONED = "POSTPONED"
    CANCELED = "CANCELED"


class PredictionStatus(str, Enum):
    PENDING = "pending"
    SCORED = "scored"


class Outcome(str, Enum):
    HOME = "home"
    AWAY = "away"
    DRAW = "draw"


class LeaderboardPeriod(str, Enum):
    OVERALL = "overall"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    SAME = "same"


class RecentForm(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    POOR = "poor"


class AchievementCategory(str, Enum):
    PREDICTIONS = "predictions"
    ACCURACY = "accuracy"
    STREAKS = "streaks"
    SOCIAL = "social"


class Rarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"

    @property
    def is_rare(self) -> bool:
        return self in (Rarity.EPIC, Rarity.LEGENDARY)
