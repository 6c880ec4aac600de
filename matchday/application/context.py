"""Application context wiring every long-lived service explicitly."""

from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

from matchday.config.settings import Settings, settings as default_settings
from matchday.domain.entities.achievement import AchievementSummary
from matchday.domain.entities.leaderboard import LeaderboardEntry, RankedEntry
from matchday.domain.entities.statistics import StatisticsReport, UserStatistics
from matchday.domain.interfaces.notifier import Notifier
from matchday.domain.value_objects.enums import LeaderboardPeriod
from matchday.repositories.sqlite.achievements_sqlite import AchievementsRepoSqlite
from matchday.repositories.sqlite.leaderboard_sqlite import LeaderboardRepoSqlite
from matchday.repositories.sqlite.leagues_sqlite import LeagueDirectorySqlite
from matchday.repositories.sqlite.match_results_sqlite import MatchResultsRepoSqlite
from matchday.repositories.sqlite.predictions_sqlite import PredictionsRepoSqlite
from matchday.repositories.sqlite.user_stats_sqlite import UserStatsRepoSqlite
from matchday.application.services.achievement_service import AchievementEngine
from matchday.application.services.leaderboard_service import LeaderboardRanker
from matchday.application.services.match_results_service import MatchResultsService
from matchday.application.services.notifications import LoggingNotifier
from matchday.application.services.result_cache import ResultCache
from matchday.application.services.result_gateway import ResultIngestionGateway
from matchday.application.services.scoring_service import ScoringEngine
from matchday.application.services.statistics_aggregator import StatisticsAggregator
from matchday.application.services.user_statistics_service import UserStatisticsService


class _ClientProto(Protocol):
    def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any: ...


@dataclass
class AppContext:
    conn: sqlite3.Connection
    predictions: PredictionsRepoSqlite
    leagues: LeagueDirectorySqlite
    cache: ResultCache
    gateway: ResultIngestionGateway
    aggregator: StatisticsAggregator
    scoring: ScoringEngine
    leaderboard: LeaderboardRanker
    statistics: UserStatisticsService
    achievements: AchievementEngine
    results: MatchResultsService

    def recalculate_league_leaderboard(self, league_id: str) -> list[LeaderboardEntry]:
        return self.leaderboard.recalculate(league_id)

    def get_enhanced_league_leaderboard(
        self, league_id: str, period: LeaderboardPeriod = LeaderboardPeriod.OVERALL
    ) -> list[RankedEntry]:
        return self.leaderboard.get_enhanced_league_leaderboard(league_id, period)

    def get_user_statistics(self, user_id: str, force_refresh: bool = False) -> StatisticsReport:
        return self.statistics.get_user_statistics(user_id, force_refresh)

    def get_user_achievement_data(
        self,
        user_id: str,
        stats: Optional[UserStatistics] = None,
        force_refresh: bool = False,
    ) -> AchievementSummary:
        """Achievement summary; statistics are loaded when not supplied."""
        if stats is None:
            stats = self.statistics.get_user_statistics(user_id, force_refresh)
        return self.achievements.get_user_achievement_data(user_id, stats, force_refresh)

    def join_league(self, league_id: str, user_id: str) -> Optional[LeaderboardEntry]:
        entry = self.leagues.add_member(league_id, user_id, initializer=self.leaderboard)
        self.statistics.invalidate(user_id)
        return entry

    def close(self) -> None:
        self.conn.close()


def connect(db_path: str) -> sqlite3.Connection:
    if db_path != ":memory:":
        directory = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(directory, exist_ok=True)
    # Shared by services that may be driven from worker threads; statistics
    # writes are serialized by their repository.
    return sqlite3.connect(db_path, check_same_thread=False)


def build_context(
    *,
    conn: Optional[sqlite3.Connection] = None,
    client: Optional[_ClientProto] = None,
    notifier: Optional[Notifier] = None,
    config: Optional[Settings] = None,
) -> AppContext:
    cfg = config or default_settings
    conn = conn if conn is not None else connect(cfg.db_path)
    notifier = notifier or LoggingNotifier()

    predictions = PredictionsRepoSqlite(conn)
    stats_repo = UserStatsRepoSqlite(conn)
    leaderboard_repo = LeaderboardRepoSqlite(conn)
    leagues = LeagueDirectorySqlite(conn)

    cache = ResultCache(MatchResultsRepoSqlite(conn), ttl_hours=cfg.result_cache_ttl_hours)
    gateway = ResultIngestionGateway(
        client,
        season_override=cfg.season_override,
        detail_delay=cfg.detail_request_delay,
        max_api_calls=cfg.max_api_calls,
    )
    aggregator = StatisticsAggregator(stats_repo)
    scoring = ScoringEngine(predictions, aggregator, notifier=notifier)
    ranker = LeaderboardRanker(leaderboard_repo, predictions, leagues=leagues)
    statistics = UserStatisticsService(
        stats_repo,
        predictions,
        leaderboard=leaderboard_repo,
        leagues=leagues,
        cache_seconds=cfg.statistics_cache_seconds,
    )
    achievements = AchievementEngine(
        AchievementsRepoSqlite(conn),
        notifier=notifier,
        cache_seconds=cfg.achievement_cache_seconds,
    )
    results = MatchResultsService(cache, gateway, scoring, max_api_calls=cfg.max_api_calls)
    return AppContext(
        conn=conn,
        predictions=predictions,
        leagues=leagues,
        cache=cache,
        gateway=gateway,
        aggregator=aggregator,
        scoring=scoring,
        leaderboard=ranker,
        statistics=statistics,
        achievements=achievements,
        results=results,
    )
