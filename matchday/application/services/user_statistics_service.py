from __future__ import annotations

import logging
import math
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Sequence

from matchday.config.settings import STATISTICS_CACHE_SECONDS
from matchday.domain.entities._time import utcnow
from matchday.domain.entities.prediction import Prediction
from matchday.domain.entities.statistics import (
    CompetitionShare,
    MonthlyPoint,
    StatisticsReport,
    TrendPoint,
    UserStatistics,
    WeeklyBreakdown,
    accuracy_percent,
)
from matchday.domain.interfaces.leagues import LeagueDirectory
from matchday.domain.value_objects.enums import LeaderboardPeriod
from matchday.domain.value_objects.ids import GENERAL_LEAGUE_ID
from matchday.infrastructure.ttl_cache import TTLCache
from matchday.repositories.leaderboard import LeaderboardRepo
from matchday.repositories.predictions import PredictionsRepo
from matchday.repositories.user_stats import UserStatsRepo
from matchday.application.services.leaderboard_service import rank_entries
from matchday.application.services.statistics_aggregator import round_half_up

logger = logging.getLogger(__name__)

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
CHART_MONTHS = 6
TREND_WEEKS = 6
NO_DATA = "No Data"


def _is_correct(p: Prediction) -> bool:
    return p.is_scored and p.evaluation is not None and p.evaluation.correct_outcome


def _last_months(now: datetime, count: int) -> list[tuple[int, int]]:
    out = []
    year, month = now.year, now.month
    for _ in range(count):
        out.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(out))


def monthly_activity(predictions: Sequence[Prediction], now: datetime) -> list[MonthlyPoint]:
    """Predictions made and correct outcomes per calendar month, last six months."""
    months = _last_months(now, CHART_MONTHS)
    made: Counter[tuple[int, int]] = Counter()
    correct: Counter[tuple[int, int]] = Counter()
    for p in predictions:
        key = (p.created_at.year, p.created_at.month)
        made[key] += 1
        if _is_correct(p):
            correct[key] += 1
    return [
        MonthlyPoint(month=MONTHS[m - 1], predictions=made[(y, m)], correct=correct[(y, m)])
        for y, m in months
    ]


def accuracy_trend(predictions: Sequence[Prediction], now: datetime) -> list[TrendPoint]:
    """Outcome accuracy for each of the last six 7-day windows, ``W6`` being the latest."""
    totals = [0] * TREND_WEEKS
    hits = [0] * TREND_WEEKS
    for p in predictions:
        if not p.is_scored:
            continue
        weeks_ago = math.floor((now - p.created_at) / timedelta(days=7))
        if 0 <= weeks_ago < TREND_WEEKS:
            slot = TREND_WEEKS - 1 - weeks_ago
            totals[slot] += 1
            hits[slot] += int(_is_correct(p))
    return [
        TrendPoint(
            week=f"W{i + 1}",
            accuracy=round_half_up(hits[i] / totals[i] * 100) if totals[i] else 0,
        )
        for i in range(TREND_WEEKS)
    ]


def competition_distribution(predictions: Sequence[Prediction]) -> list[CompetitionShare]:
    counts: Counter[str] = Counter()
    for p in predictions:
        name = p.result.competition if p.result and p.result.competition else "Other"
        counts[name] += 1
    if not counts:
        return [CompetitionShare(name=NO_DATA, value=1)]
    return [CompetitionShare(name=n, value=v) for n, v in counts.most_common()]


def weekly_breakdown(predictions: Sequence[Prediction]) -> list[WeeklyBreakdown]:
    """Scored predictions grouped by the ISO week they were scored in."""
    totals: Counter[str] = Counter()
    hits: Counter[str] = Counter()
    for p in predictions:
        if not p.is_scored:
            continue
        iso = (p.evaluated_at or p.created_at).isocalendar()
        key = f"{iso[0]}-W{iso[1]:02d}"
        totals[key] += 1
        hits[key] += int(_is_correct(p))
    return [
        WeeklyBreakdown(
            week=k, total=totals[k], correct=hits[k], accuracy=accuracy_percent(hits[k], totals[k])
        )
        for k in sorted(totals)
    ]


def days_active(predictions: Sequence[Prediction], now: datetime) -> int:
    if not predictions:
        return 0
    first = min(p.created_at for p in predictions)
    return math.ceil(abs((now - first).total_seconds()) / 86400)


def consecutive_days(predictions: Sequence[Prediction], today: date) -> int:
    """Days in a row, ending today, on which at least one prediction was made."""
    days = {p.created_at.date() for p in predictions}
    count = 0
    while today - timedelta(days=count) in days:
        count += 1
    return count


def default_report(user_id: str, now: Optional[datetime] = None) -> StatisticsReport:
    now = now or utcnow()
    return StatisticsReport(
        user_id=user_id,
        monthly_data=[MonthlyPoint(month=MONTHS[m - 1]) for _, m in _last_months(now, CHART_MONTHS)],
        accuracy_trend=[TrendPoint(week=f"W{i + 1}") for i in range(TREND_WEEKS)],
        competition_data=[CompetitionShare(name=NO_DATA, value=1)],
        last_calculated=now,
    )


class UserStatisticsService:
    """Statistics report for one user: stored totals plus chart-ready breakdowns.

    Reports are cached in process for one hour; ``force_refresh`` recomputes.
    Any failure while computing returns the empty default report.
    """

    def __init__(
        self,
        stats: UserStatsRepo,
        predictions: PredictionsRepo,
        *,
        leaderboard: Optional[LeaderboardRepo] = None,
        leagues: Optional[LeagueDirectory] = None,
        cache_seconds: float = STATISTICS_CACHE_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._stats = stats
        self._predictions = predictions
        self._leaderboard = leaderboard
        self._leagues = leagues
        self._clock = clock or utcnow
        self._cache = TTLCache[str, StatisticsReport](cache_seconds)

    def get_user_statistics(self, user_id: str, force_refresh: bool = False) -> StatisticsReport:
        if not force_refresh:
            cached = self._cache.get(user_id)
            if cached is not None:
                return cached
        try:
            report = self._calculate(user_id)
        except Exception:
            logger.exception("Statistics calculation failed", extra={"user_id": user_id})
            return default_report(user_id, self._clock())
        self._cache.set(user_id, report)
        return report

    def invalidate(self, user_id: str) -> None:
        self._cache.invalidate(user_id)

    def _calculate(self, user_id: str) -> StatisticsReport:
        now = self._clock()
        base = self._stats.get(user_id) or UserStatistics(user_id=user_id)
        predictions = self._predictions.list_for_user(user_id)
        scored = [p for p in predictions if p.is_scored]

        avg = round(base.total_points / base.total_predictions, 1) if base.total_predictions else 0.0
        return StatisticsReport(
            **base.model_dump(),
            correct_scorers=sum(len(p.evaluation.scorer_hits) for p in scored if p.evaluation),
            avg_points_per_match=avg,
            leagues_joined=self._leagues.count_user_leagues(user_id) if self._leagues else 0,
            league_wins=self._league_wins(user_id),
            global_rank=self._global_rank(user_id),
            days_active=days_active(predictions, now),
            consecutive_days=consecutive_days(predictions, now.date()),
            monthly_data=monthly_activity(predictions, now),
            accuracy_trend=accuracy_trend(predictions, now),
            competition_data=competition_distribution(predictions),
            weekly_breakdown=weekly_breakdown(scored),
            last_calculated=now,
        )

    def _league_wins(self, user_id: str) -> int:
        if self._leaderboard is None:
            return 0
        return self._leaderboard.count_first_places(user_id, exclude_league=GENERAL_LEAGUE_ID)

    def _global_rank(self, user_id: str) -> Optional[int]:
        if self._leaderboard is None:
            return None
        ranked = rank_entries(
            self._leaderboard.list_entries(GENERAL_LEAGUE_ID, LeaderboardPeriod.OVERALL)
        )
        return next((e.rank for e in ranked if e.user_id == user_id), None)
