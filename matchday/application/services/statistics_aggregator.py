"""Running user statistics.

Two streak rules coexist on purpose:

* :meth:`StatisticsAggregator.apply_evaluation` updates the global
  ``UserStatistics`` incrementally; the streak grows on any prediction that
  earned points.
* :func:`compute_league_stats` rebuilds league-scoped figures from the full
  scored history; the streak grows on a correct outcome only. Replaying the
  history makes it insensitive to retried or out-of-order updates.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable, Optional

from matchday.domain.entities._time import utcnow
from matchday.domain.entities.leaderboard import LeagueStats
from matchday.domain.entities.prediction import Evaluation, Prediction
from matchday.domain.entities.statistics import UserStatistics, accuracy_percent
from matchday.repositories.user_stats import UserStatsRepo


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def next_statistics(
    user_id: str,
    current: Optional[UserStatistics],
    evaluation: Evaluation,
    *,
    now: Optional[datetime] = None,
) -> UserStatistics:
    prev = current or UserStatistics(user_id=user_id)
    total = prev.total_predictions + 1
    correct = prev.correct_outcomes + int(evaluation.correct_outcome)
    streak = prev.current_streak + 1 if evaluation.points > 0 else 0
    return UserStatistics(
        user_id=user_id,
        total_points=prev.total_points + evaluation.points,
        total_predictions=total,
        correct_outcomes=correct,
        exact_scores=prev.exact_scores + int(evaluation.exact_score),
        current_streak=streak,
        best_streak=max(prev.best_streak, streak),
        accuracy=accuracy_percent(correct, total),
        last_updated=now or utcnow(),
    )


def compute_league_stats(predictions: Iterable[Prediction]) -> LeagueStats:
    """Replay a user's scored predictions in creation order."""
    history = sorted((p for p in predictions if p.is_scored), key=lambda p: p.created_at)
    if not history:
        return LeagueStats()

    points = correct = exact = scorers = 0
    streak = best = 0
    for p in history:
        points += p.points
        ev = p.evaluation
        if ev is None:
            continue
        correct += int(ev.correct_outcome)
        exact += int(ev.exact_score)
        scorers += len(ev.scorer_hits)
        if ev.correct_outcome:
            streak += 1
            best = max(best, streak)
        else:
            streak = 0

    total = len(history)
    return LeagueStats(
        total_points=points,
        total_predictions=total,
        correct_outcomes=correct,
        exact_scores=exact,
        correct_scorers=scorers,
        current_streak=streak,
        best_streak=best,
        last_match_points=history[-1].points,
        accuracy=round_half_up(correct / total * 100),
        average_points_per_match=round(points / total, 2),
    )


class StatisticsAggregator:
    def __init__(
        self, repo: UserStatsRepo, *, clock: Optional[Callable[[], datetime]] = None
    ) -> None:
        self._repo = repo
        self._clock = clock or utcnow

    def apply_evaluation(self, user_id: str, evaluation: Evaluation) -> UserStatistics:
        """Fold one evaluation into the user's totals under the repository's lock."""
        return self._repo.update(
            user_id,
            lambda current: next_statistics(user_id, current, evaluation, now=self._clock()),
        )

    def get(self, user_id: str) -> Optional[UserStatistics]:
        return self._repo.get(user_id)

    compute_league_stats = staticmethod(compute_league_stats)
