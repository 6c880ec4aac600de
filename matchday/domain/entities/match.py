from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from matchday.domain.value_objects.enums import MatchStatus, Outcome
from matchday.domain.entities._time import ensure_utc


class TeamRef(BaseModel):
    id: Optional[str] = None
    name: str
    short_name: Optional[str] = None
    logo: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class Match(BaseModel):
    """A scheduled fixture as listed by the provider."""

    id: str = Field(..., description="Provider event id")
    league_id: str
    competition: str
    competition_code: str
    competition_country: Optional[str] = None
    kickoff_time: datetime
    venue: str = "TBD"
    status: str = MatchStatus.SCHEDULED.value
    matchday: Optional[int] = None
    season: Optional[str] = None
    home_team: TeamRef
    away_team: TeamRef

    model_config = ConfigDict(frozen=True)

    @field_validator("kickoff_time", mode="before")
    @classmethod
    def _ensure_utc(cls, v: datetime, info: ValidationInfo) -> Optional[datetime]:
        return ensure_utc(v, str(info.field_name))


class Score(BaseModel):
    home: int = Field(..., ge=0)
    away: int = Field(..., ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def outcome(self) -> Outcome:
        return outcome_of(self.home, self.away)


class MatchResult(BaseModel):
    """A finalized match result as stored in the result cache."""

    match_id: str
    final_score: Optional[Score] = None
    status: str = MatchStatus.FINISHED.value
    scorers: tuple[str, ...] = ()
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    competition: Optional[str] = None
    kickoff_time: Optional[datetime] = None
    venue: Optional[str] = None
    cached_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    source: str = "thesportsdb"

    model_config = ConfigDict(frozen=True)

    @field_validator("kickoff_time", "cached_at", "last_updated", mode="before")
    @classmethod
    def _ensure_utc(cls, v: Optional[datetime], info: ValidationInfo) -> Optional[datetime]:
        return ensure_utc(v, str(info.field_name))

    @field_validator("scorers", mode="before")
    @classmethod
    def _clean_scorers(cls, v: object) -> tuple[str, ...]:
        if not v:
            return ()
        if isinstance(v, str):
            v = [v]
        return tuple(str(s).strip() for s in v if isinstance(s, str) and s.strip())

    @property
    def is_final(self) -> bool:
        return self.final_score is not None


def outcome_of(home: int, away: int) -> Outcome:
    if home > away:
        return Outcome.HOME
    if home < away:
        return Outcome.AWAY
    return Outcome.DRAW
