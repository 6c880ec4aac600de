from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, TypedDict

from matchday.domain.entities._time import utcnow
from matchday.domain.entities.match import MatchResult, outcome_of
from matchday.domain.entities.prediction import Evaluation, Prediction
from matchday.domain.interfaces.notifier import Notifier
from matchday.domain.value_objects.enums import PredictionStatus
from matchday.repositories.predictions import PredictionsRepo
from matchday.application.services.statistics_aggregator import StatisticsAggregator

logger = logging.getLogger(__name__)

EXACT_SCORE_POINTS = 3
OUTCOME_POINTS = 1
SCORER_POINTS = 1


class ProcessResult(TypedDict):
    processed: int
    stats_failures: int


def _norm_name(name: str) -> str:
    return name.strip().lower()


def evaluate(prediction: Prediction, result: MatchResult) -> Evaluation:
    """Score one prediction against a final result.

    Exact score earns 3 points, otherwise a matching outcome earns 1; every
    predicted scorer found among the actual scorers adds 1. Predictions
    without both scores can only earn scorer points.
    """
    points = 0
    exact = False
    correct_outcome = False

    score = result.final_score
    if score is not None and prediction.home_score is not None and prediction.away_score is not None:
        if prediction.home_score == score.home and prediction.away_score == score.away:
            exact = True
            correct_outcome = True
            points += EXACT_SCORE_POINTS
        elif outcome_of(prediction.home_score, prediction.away_score) == score.outcome:
            correct_outcome = True
            points += OUTCOME_POINTS

    actual = {_norm_name(s) for s in result.scorers}
    hits = tuple(s for s in prediction.scorers if _norm_name(s) in actual)
    points += SCORER_POINTS * len(hits)

    return Evaluation(
        points=points, exact_score=exact, correct_outcome=correct_outcome, scorer_hits=hits
    )


class ScoringEngine:
    """Turn a final match result into point awards, exactly once per prediction."""

    def __init__(
        self,
        predictions: PredictionsRepo,
        aggregator: StatisticsAggregator,
        *,
        notifier: Optional[Notifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._predictions = predictions
        self._aggregator = aggregator
        self._notifier = notifier
        self._clock = clock or utcnow

    evaluate = staticmethod(evaluate)

    def process_match_result(self, match_id: str, result: MatchResult) -> ProcessResult:
        if not result.is_final:
            logger.warning("Result has no final score, skipping", extra={"match_id": match_id})
            return ProcessResult(processed=0, stats_failures=0)

        pending = self._predictions.list_unscored_for_match(match_id)
        if not pending:
            return ProcessResult(processed=0, stats_failures=0)

        now = self._clock()
        scored: list[Prediction] = []
        for prediction in pending:
            evaluation = evaluate(prediction, result)
            scored.append(
                prediction.model_copy(
                    update={
                        "status": PredictionStatus.SCORED,
                        "points": evaluation.points,
                        "evaluation": evaluation,
                        "result": result,
                        "evaluated_at": now,
                        "updated_at": now,
                    }
                )
            )

        # All-or-nothing; a failure here propagates and leaves the match unscored.
        written = self._predictions.apply_scores(scored)

        failures = 0
        for prediction in written:
            assert prediction.evaluation is not None
            try:
                self._aggregator.apply_evaluation(prediction.user_id, prediction.evaluation)
            except Exception:
                failures += 1
                logger.exception(
                    "Statistics update failed",
                    extra={"user_id": prediction.user_id, "match_id": match_id},
                )

        for prediction in written:
            self._notify(prediction)

        logger.info(
            "Match scored",
            extra={"match_id": match_id, "processed": len(written), "stats_failures": failures},
        )
        return ProcessResult(processed=len(written), stats_failures=failures)

    def _notify(self, prediction: Prediction) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.match_scored(prediction.user_id, prediction.match_id, prediction.points)
        except Exception as exc:
            logger.warning(
                "Match notification failed",
                extra={"user_id": prediction.user_id, "error": str(exc)},
            )
