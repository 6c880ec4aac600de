from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from matchday.domain.entities.achievement import AchievementRecord


class AchievementsRepo(ABC):
    """Repository interface for per-user achievement records."""

    @abstractmethod
    def load(self, user_id: str) -> dict[str, AchievementRecord]:
        """Return stored records of ``user_id`` keyed by achievement id."""

    @abstractmethod
    def save(self, user_id: str, records: Iterable[AchievementRecord]) -> None:
        """Persist records; an unlocked record is never downgraded to locked."""
