from __future__ import annotations

import logging

from matchday.domain.entities.achievement import AchievementView


class LoggingNotifier:
    """Default :class:`~matchday.domain.interfaces.Notifier` writing structured log records."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def achievement_unlocked(self, user_id: str, achievement: AchievementView) -> None:
        self._logger.info(
            "Notification: achievement unlocked",
            extra={
                "user_id": user_id,
                "achievement": achievement.id,
                "title": achievement.title,
                "rarity": achievement.rarity.value,
                "points": achievement.points,
            },
        )

    def match_scored(self, user_id: str, match_id: str, points: int) -> None:
        self._logger.info(
            "Notification: match scored",
            extra={"user_id": user_id, "match_id": match_id, "points": points},
        )
