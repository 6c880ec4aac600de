from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

from matchday.domain.entities.statistics import UserStatistics

StatsMutation = Callable[[Optional[UserStatistics]], UserStatistics]


class UserStatsRepo(ABC):
    """Repository interface for global per-user statistics."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[UserStatistics]:
        """Return stored statistics for ``user_id``."""

    @abstractmethod
    def update(self, user_id: str, mutate: StatsMutation) -> UserStatistics:
        """Atomically read, transform and write the statistics of one user."""
