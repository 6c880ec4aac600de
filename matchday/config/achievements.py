"""Static achievement catalogue.

The list order is the evaluation and display order. Definitions are
process-lifetime constants and are never mutated at runtime.
"""

from __future__ import annotations

from typing import Tuple

from matchday.domain.entities.achievement import AchievementContext, AchievementDefinition
from matchday.domain.value_objects.enums import AchievementCategory as Cat
from matchday.domain.value_objects.enums import Rarity


def _ratio(value: float, target: float) -> float:
    return min(100.0, value / target * 100)


def _more(target: int, current: int, noun: str) -> str:
    return f"Make {target - current} more {noun}"


def _accuracy_progress(min_predictions: int, target: float):
    def progress(ctx: AchievementContext) -> float:
        if ctx.total_predictions >= min_predictions:
            return _ratio(ctx.accuracy, target)
        # Half of the bar is reserved for reaching the sample size.
        return ctx.total_predictions / min_predictions * 50

    return progress


def _accuracy_requirement(min_predictions: int, target: float):
    def requirement(ctx: AchievementContext) -> str:
        if ctx.total_predictions < min_predictions:
            return _more(min_predictions, ctx.total_predictions, "predictions")
        return f"Current accuracy: {ctx.accuracy:.1f}% (need {target:g}%)"

    return requirement


def _prediction_count(target: int) -> dict:
    return dict(
        predicate=lambda ctx: ctx.total_predictions >= target,
        progress=lambda ctx: _ratio(ctx.total_predictions, target),
        requirement=lambda ctx: _more(target, ctx.total_predictions, "predictions"),
    )


def _accuracy_over(min_predictions: int, target: float) -> dict:
    return dict(
        predicate=lambda ctx: ctx.total_predictions >= min_predictions and ctx.accuracy >= target,
        progress=_accuracy_progress(min_predictions, target),
        requirement=_accuracy_requirement(min_predictions, target),
    )


def _best_streak(target: int) -> dict:
    return dict(
        predicate=lambda ctx: ctx.best_streak >= target,
        progress=lambda ctx: _ratio(ctx.best_streak, target),
        requirement=lambda ctx: f"Current best streak: {ctx.best_streak} (need {target})",
    )


def _days_active(target: int) -> dict:
    return dict(
        predicate=lambda ctx: ctx.days_active >= target,
        progress=lambda ctx: _ratio(ctx.days_active, target),
        requirement=lambda ctx: f"{target - ctx.days_active} more days of activity needed",
    )


def _has_perfect_week(ctx: AchievementContext) -> bool:
    return any(week.accuracy == 100 and week.total >= 5 for week in ctx.weekly)


ACHIEVEMENTS: Tuple[AchievementDefinition, ...] = (
    # Predictions
    AchievementDefinition(
        "first_prediction", "First Prediction", "Made your first match prediction",
        Cat.PREDICTIONS, Rarity.COMMON, 10,
        predicate=lambda ctx: ctx.total_predictions >= 1,
    ),
    AchievementDefinition(
        "prediction_rookie", "Prediction Rookie", "Made 10 predictions",
        Cat.PREDICTIONS, Rarity.COMMON, 25, **_prediction_count(10),
    ),
    AchievementDefinition(
        "prediction_veteran", "Prediction Veteran", "Made 50 predictions",
        Cat.PREDICTIONS, Rarity.RARE, 75, **_prediction_count(50),
    ),
    AchievementDefinition(
        "century_club", "Century Club", "Made 100 predictions",
        Cat.PREDICTIONS, Rarity.RARE, 150, **_prediction_count(100),
    ),
    AchievementDefinition(
        "prediction_master", "Prediction Master", "Made 500 predictions",
        Cat.PREDICTIONS, Rarity.EPIC, 400, **_prediction_count(500),
    ),
    # Accuracy
    AchievementDefinition(
        "first_correct", "First Success", "Got your first prediction correct",
        Cat.ACCURACY, Rarity.COMMON, 15,
        predicate=lambda ctx: ctx.correct_outcomes >= 1,
    ),
    AchievementDefinition(
        "accurate_predictor", "Accurate Predictor", "Achieve 60% accuracy over 20 predictions",
        Cat.ACCURACY, Rarity.RARE, 100, **_accuracy_over(20, 60),
    ),
    AchievementDefinition(
        "sharp_shooter", "Sharp Shooter", "Achieve 75% accuracy over 30 predictions",
        Cat.ACCURACY, Rarity.EPIC, 250, **_accuracy_over(30, 75),
    ),
    AchievementDefinition(
        "prediction_prodigy", "Prediction Prodigy", "Achieve 90% accuracy over 50 predictions",
        Cat.ACCURACY, Rarity.LEGENDARY, 500, **_accuracy_over(50, 90),
    ),
    AchievementDefinition(
        "perfect_week", "Perfect Week", "Got all predictions correct in a single week",
        Cat.ACCURACY, Rarity.RARE, 100,
        predicate=_has_perfect_week,
    ),
    # Streaks
    AchievementDefinition(
        "winning_streak", "Winning Streak", "Achieved a 3-match correct prediction streak",
        Cat.STREAKS, Rarity.COMMON, 30, **_best_streak(3),
    ),
    AchievementDefinition(
        "hot_streak", "Hot Streak", "Achieved a 10-match correct prediction streak",
        Cat.STREAKS, Rarity.EPIC, 250, **_best_streak(10),
    ),
    AchievementDefinition(
        "legendary_streak", "Legendary Streak", "Achieved a 20-match correct prediction streak",
        Cat.STREAKS, Rarity.LEGENDARY, 600, **_best_streak(20),
    ),
    # Exact scores
    AchievementDefinition(
        "first_exact_score", "Exact Match", "Predicted an exact score correctly",
        Cat.ACCURACY, Rarity.RARE, 75,
        predicate=lambda ctx: ctx.exact_scores >= 1,
    ),
    AchievementDefinition(
        "score_wizard", "Score Wizard", "Predicted 10 exact scores correctly",
        Cat.ACCURACY, Rarity.EPIC, 300,
        predicate=lambda ctx: ctx.exact_scores >= 10,
        progress=lambda ctx: _ratio(ctx.exact_scores, 10),
        requirement=lambda ctx: f"{10 - ctx.exact_scores} more exact scores needed",
    ),
    # Social
    AchievementDefinition(
        "social_starter", "Social Starter", "Joined your first league",
        Cat.SOCIAL, Rarity.COMMON, 20,
        predicate=lambda ctx: ctx.leagues_joined >= 1,
    ),
    AchievementDefinition(
        "league_enthusiast", "League Enthusiast", "Joined 5 different leagues",
        Cat.SOCIAL, Rarity.RARE, 100,
        predicate=lambda ctx: ctx.leagues_joined >= 5,
        progress=lambda ctx: _ratio(ctx.leagues_joined, 5),
        requirement=lambda ctx: f"Join {5 - ctx.leagues_joined} more leagues",
    ),
    AchievementDefinition(
        "league_master", "League Master", "Won first place in a league",
        Cat.SOCIAL, Rarity.LEGENDARY, 500,
        predicate=lambda ctx: ctx.league_wins >= 1,
    ),
    # Activity
    AchievementDefinition(
        "dedicated_week", "Dedicated Week", "Made predictions for 7 consecutive days",
        Cat.PREDICTIONS, Rarity.COMMON, 40,
        predicate=lambda ctx: ctx.consecutive_days >= 7,
        progress=lambda ctx: _ratio(ctx.consecutive_days, 7),
        requirement=lambda ctx: f"{7 - ctx.consecutive_days} more consecutive days needed",
    ),
    AchievementDefinition(
        "loyal_fan", "Loyal Fan", "Active for 30 days",
        Cat.PREDICTIONS, Rarity.RARE, 120, **_days_active(30),
    ),
    AchievementDefinition(
        "veteran_predictor", "Veteran Predictor", "Active for 100 days",
        Cat.PREDICTIONS, Rarity.EPIC, 350, **_days_active(100),
    ),
)

ACHIEVEMENTS_BY_ID = {definition.id: definition for definition in ACHIEVEMENTS}
