from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from matchday.domain.value_objects.enums import PredictionStatus
from matchday.domain.value_objects.ids import prediction_key
from matchday.domain.entities._time import ensure_utc
from matchday.domain.entities.match import MatchResult

MAX_SCORERS = 3


class Evaluation(BaseModel):
    """Outcome of scoring one prediction against a final result."""

    points: int = Field(0, ge=0)
    exact_score: bool = False
    correct_outcome: bool = False
    scorer_hits: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)


class Prediction(BaseModel):
    user_id: str
    match_id: str
    home_score: Optional[int] = Field(default=None, ge=0)
    away_score: Optional[int] = Field(default=None, ge=0)
    scorers: tuple[str, ...] = ()
    status: PredictionStatus = PredictionStatus.PENDING
    points: int = 0
    evaluation: Optional[Evaluation] = None
    result: Optional[MatchResult] = None
    created_at: datetime
    updated_at: datetime
    evaluated_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("home_score", "away_score", mode="before")
    @classmethod
    def _blank_to_none(cls, v: object) -> object:
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
            try:
                return int(v)
            except ValueError:
                return None
        return v

    @field_validator("scorers", mode="before")
    @classmethod
    def _unique_scorers(cls, v: object) -> tuple[str, ...]:
        if not v:
            return ()
        out: list[str] = []
        seen: set[str] = set()
        for item in v if not isinstance(v, str) else [v]:
            if not isinstance(item, str) or not item.strip():
                continue
            norm = item.strip().lower()
            if norm in seen:
                continue
            seen.add(norm)
            out.append(item.strip())
        if len(out) > MAX_SCORERS:
            raise ValueError(f"A prediction may name at most {MAX_SCORERS} scorers")
        return tuple(out)

    @field_validator("created_at", "updated_at", "evaluated_at", mode="before")
    @classmethod
    def _ensure_utc(cls, v: Optional[datetime], info: ValidationInfo) -> Optional[datetime]:
        return ensure_utc(v, str(info.field_name))

    @property
    def key(self) -> str:
        return prediction_key(self.user_id, self.match_id)

    @property
    def is_scored(self) -> bool:
        return self.status == PredictionStatus.SCORED
