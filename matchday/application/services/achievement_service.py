from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from matchday.config.achievements import ACHIEVEMENTS
from matchday.config.settings import ACHIEVEMENT_CACHE_SECONDS
from matchday.domain.entities._time import utcnow
from matchday.domain.entities.achievement import (
    AchievementContext,
    AchievementDefinition,
    AchievementRecord,
    AchievementSummary,
    AchievementView,
)
from matchday.domain.entities.statistics import UserStatistics
from matchday.domain.interfaces.notifier import Notifier
from matchday.infrastructure.ttl_cache import TTLCache
from matchday.repositories.achievements import AchievementsRepo

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5
DEFAULT_REQUIREMENT = "Start making predictions to unlock"


def time_ago(then: datetime, now: datetime) -> str:
    seconds = int((now - then).total_seconds())
    if seconds < 60:
        return "Just now"
    if seconds < 3600:
        return f"{seconds // 60} minutes ago"
    if seconds < 86400:
        return f"{seconds // 3600} hours ago"
    if seconds < 604800:
        return f"{seconds // 86400} days ago"
    return f"{seconds // 604800} weeks ago"


def summarize(
    views: Sequence[AchievementView],
    now: datetime,
    *,
    total: int,
    newly_unlocked: Sequence[AchievementView] = (),
) -> AchievementSummary:
    unlocked = [v for v in views if v.unlocked]
    dated = sorted(
        (v for v in unlocked if v.unlocked_date is not None),
        key=lambda v: v.unlocked_date,  # type: ignore[arg-type,return-value]
        reverse=True,
    )
    recent = [
        v.model_copy(update={"time_ago": time_ago(v.unlocked_date, now)})  # type: ignore[arg-type]
        for v in dated[:RECENT_LIMIT]
    ]
    return AchievementSummary(
        achievements=list(views),
        unlocked=len(unlocked),
        total=total,
        points=sum(v.points for v in unlocked),
        rare=sum(1 for v in unlocked if v.rarity.is_rare),
        recent=recent,
        newly_unlocked=list(newly_unlocked),
        last_calculated=now,
    )


class AchievementEngine:
    """Detect achievement unlocks from user statistics.

    - Definitions are evaluated in catalogue order against the statistics.
    - An unlock is sticky: a stored unlocked record is carried forward even
      when its predicate no longer holds.
    - Newly unlocked achievements are persisted before notifications are sent;
      notification failures are only logged.
    - Summaries are cached for 30 minutes per user. Any unexpected failure
      yields the all-locked default summary instead of an exception.
    """

    def __init__(
        self,
        repo: AchievementsRepo,
        *,
        definitions: Sequence[AchievementDefinition] = ACHIEVEMENTS,
        notifier: Optional[Notifier] = None,
        cache_seconds: float = ACHIEVEMENT_CACHE_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repo = repo
        self._definitions = tuple(definitions)
        self._notifier = notifier
        self._clock = clock or utcnow
        self._cache = TTLCache[str, AchievementSummary](cache_seconds)

    @property
    def definitions(self) -> tuple[AchievementDefinition, ...]:
        return self._definitions

    def evaluate(
        self,
        user_id: str,
        stats: Optional[UserStatistics],
        force_refresh: bool = False,
    ) -> AchievementSummary:
        try:
            if not force_refresh:
                cached = self._cache.get(user_id)
                if cached is not None:
                    return cached
            if stats is None:
                logger.warning("Statistics required for achievements", extra={"user_id": user_id})
                return self.default_summary()
            return self._calculate(user_id, stats)
        except Exception:
            logger.exception("Achievement evaluation failed", extra={"user_id": user_id})
            return self.default_summary()

    def get_user_achievement_data(
        self,
        user_id: str,
        stats: Optional[UserStatistics] = None,
        force_refresh: bool = False,
    ) -> AchievementSummary:
        return self.evaluate(user_id, stats, force_refresh)

    def default_summary(self) -> AchievementSummary:
        views = [
            AchievementView.from_definition(d, progress=0.0, requirement=DEFAULT_REQUIREMENT)
            for d in self._definitions
        ]
        return summarize(views, self._clock(), total=len(self._definitions))

    def _calculate(self, user_id: str, stats: UserStatistics) -> AchievementSummary:
        ctx = AchievementContext.from_stats(stats)
        stored = self._repo.load(user_id)
        now = self._clock()

        views: list[AchievementView] = []
        records: list[AchievementRecord] = []
        newly: list[AchievementView] = []
        for definition in self._definitions:
            record = stored.get(definition.id)
            if record is not None and record.unlocked:
                records.append(record)
                views.append(
                    AchievementView.from_definition(
                        definition, unlocked=True, unlocked_date=record.unlocked_date, progress=100.0
                    )
                )
            elif definition.predicate(ctx):
                view = AchievementView.from_definition(
                    definition, unlocked=True, unlocked_date=now, progress=100.0
                )
                records.append(
                    AchievementRecord(
                        achievement_id=definition.id, unlocked=True, unlocked_date=now, progress=100.0
                    )
                )
                views.append(view)
                newly.append(view)
            else:
                progress = definition.progress_for(ctx)
                records.append(AchievementRecord(achievement_id=definition.id, progress=progress))
                views.append(
                    AchievementView.from_definition(
                        definition,
                        progress=progress,
                        requirement=definition.requirement_for(ctx),
                    )
                )

        summary = summarize(views, now, total=len(self._definitions), newly_unlocked=newly)
        try:
            self._repo.save(user_id, records)
        except Exception:
            # Unsaved unlocks are not announced.
            logger.exception("Could not save achievements", extra={"user_id": user_id})
            return summary

        for view in newly:
            logger.info(
                "Achievement unlocked", extra={"user_id": user_id, "achievement": view.id}
            )
            self._notify(user_id, view)
        self._cache.set(user_id, summary)
        return summary

    def _notify(self, user_id: str, view: AchievementView) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.achievement_unlocked(user_id, view)
        except Exception as exc:
            logger.warning(
                "Achievement notification failed",
                extra={"user_id": user_id, "achievement": view.id, "error": str(exc)},
            )
