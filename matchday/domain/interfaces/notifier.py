from __future__ import annotations

from typing import Protocol

from matchday.domain.entities.achievement import AchievementView


class Notifier(Protocol):
    """Outbound notification channel.

    Implementations may raise; callers treat every notification as best effort
    and log failures without aborting the operation that triggered them.
    """

    def achievement_unlocked(self, user_id: str, achievement: AchievementView) -> None: ...

    def match_scored(self, user_id: str, match_id: str, points: int) -> None: ...
