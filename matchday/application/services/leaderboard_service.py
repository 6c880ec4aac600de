from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Sequence

from matchday.domain.entities._time import utcnow
from matchday.domain.entities.leaderboard import (
    LeaderboardEntry,
    LeaderboardSummary,
    RankedEntry,
    UserPosition,
)
from matchday.domain.entities.prediction import Prediction
from matchday.domain.interfaces.leagues import LeagueDirectory
from matchday.domain.value_objects.enums import LeaderboardPeriod, RecentForm, Trend
from matchday.domain.value_objects.ids import GENERAL_LEAGUE_ID
from matchday.repositories.leaderboard import LeaderboardRepo
from matchday.repositories.predictions import PredictionsRepo
from matchday.application.services.statistics_aggregator import compute_league_stats, round_half_up

logger = logging.getLogger(__name__)

PERIOD_WINDOWS: dict[LeaderboardPeriod, Optional[timedelta]] = {
    LeaderboardPeriod.OVERALL: None,
    LeaderboardPeriod.WEEKLY: timedelta(days=7),
    LeaderboardPeriod.MONTHLY: timedelta(days=30),
}
TOP_PERFORMERS = 3


def _sort_key(entry: LeaderboardEntry) -> tuple:
    return (-entry.total_points, -entry.accuracy, -entry.total_predictions, entry.user_id)


def rank_entries(entries: Iterable[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Order by points, accuracy and prediction count (all descending) and number 1..n.

    Ties never share a rank; the user id decides between fully tied rows so the
    order is stable across recalculations.
    """
    ordered = sorted(entries, key=_sort_key)
    return [e.model_copy(update={"rank": i + 1}) for i, e in enumerate(ordered)]


def recent_form(current_streak: int) -> RecentForm:
    if current_streak >= 3:
        return RecentForm.EXCELLENT
    if current_streak >= 2:
        return RecentForm.GOOD
    if current_streak >= 1:
        return RecentForm.AVERAGE
    return RecentForm.POOR


def trend_of(last_match_points: int) -> Trend:
    if last_match_points > 0:
        return Trend.UP
    if last_match_points < 0:
        return Trend.DOWN
    return Trend.SAME


class LeaderboardRanker:
    """Materialized league leaderboards rebuilt on demand.

    Entries are stale until :meth:`recalculate` runs again; nothing updates
    them as predictions are scored.
    """

    def __init__(
        self,
        repo: LeaderboardRepo,
        predictions: PredictionsRepo,
        *,
        leagues: Optional[LeagueDirectory] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repo = repo
        self._predictions = predictions
        self._leagues = leagues
        self._clock = clock or utcnow

    def recalculate(self, league_id: str) -> list[LeaderboardEntry]:
        """Rebuild every period of ``league_id`` and return the overall table."""
        now = self._clock()
        members = self._member_ids(league_id)
        competitions = self._competition_filter(league_id)

        histories: dict[str, list[Prediction]] = {}
        for user_id in members:
            try:
                history = self._predictions.list_for_user(user_id, scored_only=True)
            except Exception:
                logger.exception(
                    "Could not load predictions", extra={"league_id": league_id, "user_id": user_id}
                )
                continue
            histories[user_id] = [p for p in history if _in_scope(p, competitions)]

        overall: list[LeaderboardEntry] = []
        for period, window in PERIOD_WINDOWS.items():
            created = {e.user_id: e.created_at for e in self._repo.list_entries(league_id, period)}
            entries = []
            for user_id, history in histories.items():
                if window is not None:
                    history = [p for p in history if p.evaluated_at and p.evaluated_at >= now - window]
                entry = LeaderboardEntry.from_stats(
                    league_id, period, user_id, compute_league_stats(history)
                )
                entries.append(
                    entry.model_copy(
                        update={"created_at": created.get(user_id) or now, "last_updated": now}
                    )
                )
            ranked = rank_entries(entries)
            self._repo.replace(league_id, period, ranked)
            if period is LeaderboardPeriod.OVERALL:
                overall = ranked

        logger.info(
            "Leaderboard recalculated",
            extra={"league_id": league_id, "members": len(members), "entries": len(overall)},
        )
        return overall

    def get_ranked(
        self, league_id: str, period: LeaderboardPeriod = LeaderboardPeriod.OVERALL
    ) -> list[LeaderboardEntry]:
        return rank_entries(self._repo.list_entries(league_id, period))

    def get_user_position(
        self,
        league_id: str,
        user_id: str,
        period: LeaderboardPeriod = LeaderboardPeriod.OVERALL,
    ) -> Optional[UserPosition]:
        ranked = self.get_ranked(league_id, period)
        entry = next((e for e in ranked if e.user_id == user_id), None)
        if entry is None:
            return None
        total = len(ranked)
        return UserPosition(
            **entry.model_dump(),
            total_members=total,
            percentile=round_half_up((total - entry.rank + 1) / total * 100),
        )

    def get_enhanced_league_leaderboard(
        self, league_id: str, period: LeaderboardPeriod = LeaderboardPeriod.OVERALL
    ) -> list[RankedEntry]:
        ranked = self.get_ranked(league_id, period)
        if not ranked:
            return []
        top_points = ranked[0].total_points
        return [
            RankedEntry(
                **e.model_dump(),
                points_from_first=top_points - e.total_points,
                trend=trend_of(e.last_match_points),
                is_top_performer=i < TOP_PERFORMERS,
                recent_form=recent_form(e.current_streak),
            )
            for i, e in enumerate(ranked)
        ]

    def get_top_performers(
        self, league_id: str = GENERAL_LEAGUE_ID, limit: int = TOP_PERFORMERS
    ) -> list[LeaderboardEntry]:
        return self.get_ranked(league_id)[:limit]

    def get_leaderboard_stats(self, league_id: str = GENERAL_LEAGUE_ID) -> LeaderboardSummary:
        entries = self._repo.list_entries(league_id, LeaderboardPeriod.OVERALL)
        if not entries:
            return LeaderboardSummary()
        return LeaderboardSummary(
            total_players=len(entries),
            total_predictions=sum(e.total_predictions for e in entries),
            average_accuracy=round_half_up(sum(e.accuracy for e in entries) / len(entries)),
        )

    def initialize_member(self, league_id: str, user_id: str) -> LeaderboardEntry:
        """Create an empty overall entry for a new member; existing entries are kept."""
        existing = self._repo.get(league_id, LeaderboardPeriod.OVERALL, user_id)
        if existing is not None:
            return existing
        now = self._clock()
        size = len(self._repo.list_entries(league_id, LeaderboardPeriod.OVERALL))
        entry = LeaderboardEntry(
            league_id=league_id,
            period=LeaderboardPeriod.OVERALL,
            user_id=user_id,
            rank=size + 1,
            created_at=now,
            last_updated=now,
        )
        self._repo.upsert(entry)
        return entry

    def _member_ids(self, league_id: str) -> list[str]:
        if league_id == GENERAL_LEAGUE_ID:
            return self._predictions.list_user_ids()
        if self._leagues is None:
            raise ValueError(f"No league directory configured to resolve members of {league_id}")
        return self._leagues.get_member_ids(league_id)

    def _competition_filter(self, league_id: str) -> Optional[set[str]]:
        if league_id == GENERAL_LEAGUE_ID or self._leagues is None:
            return None
        names = self._leagues.get_competitions(league_id)
        return {n.strip().lower() for n in names} if names else None


def _in_scope(prediction: Prediction, competitions: Optional[Sequence[str] | set[str]]) -> bool:
    if not competitions:
        return True
    competition = prediction.result.competition if prediction.result else None
    return bool(competition) and competition.strip().lower() in competitions
