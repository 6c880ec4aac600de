from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Sequence

from matchday.domain.entities.prediction import Prediction


class PredictionsRepo(ABC):
    """Repository interface for user predictions keyed by ``{user_id}_{match_id}``."""

    @abstractmethod
    def get(self, user_id: str, match_id: str) -> Optional[Prediction]:
        """Return the prediction of ``user_id`` for ``match_id``."""

    @abstractmethod
    def upsert(
        self, prediction: Prediction, *, kickoff_time: Optional[datetime] = None
    ) -> None:
        """Create or replace a user's prediction.

        Raises ``ValueError`` when the stored prediction has already been scored,
        or when ``kickoff_time`` is given and has passed.
        """

    @abstractmethod
    def list_unscored_for_match(self, match_id: str) -> list[Prediction]:
        """Predictions for ``match_id`` whose status is not ``scored``."""

    @abstractmethod
    def list_for_user(self, user_id: str, *, scored_only: bool = False) -> list[Prediction]:
        """Predictions of ``user_id`` ordered by creation time."""

    @abstractmethod
    def list_user_ids(self) -> list[str]:
        """Distinct ids of users that have at least one prediction."""

    @abstractmethod
    def apply_scores(self, scored: Sequence[Prediction]) -> list[Prediction]:
        """Persist scored predictions in one atomic batch.

        Rows that are already scored are left untouched; the returned list holds
        only the predictions that were actually written.
        """
