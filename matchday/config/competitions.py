from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple


@dataclass(frozen=True)
class Competition:
    """A provider league the game offers predictions for."""

    slug: str
    league_id: str
    name: str
    country: str
    aliases: Tuple[str, ...] = ()
    # Seasons to try before the date-derived one when the upcoming feed is empty.
    season_hints: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def names(self) -> Tuple[str, ...]:
        return (self.name, *self.aliases)


# TheSportsDB league ids
COMPETITIONS: Dict[str, Competition] = {
    "turkish-super-league": Competition(
        slug="turkish-super-league",
        league_id="4339",
        name="Turkish Super Lig",
        country="Turkey",
        aliases=(
            "Turkish Super Lig",
            "Turkish Super League",
            "Super Lig",
            "Turkiye Super Lig",
            "TrendYol Super Lig",
            "Spor Toto Super Lig",
        ),
    ),
    "champions-league": Competition(
        slug="champions-league",
        league_id="4480",
        name="UEFA Champions League",
        country="Europe",
        aliases=(
            "UEFA Champions League",
            "Champions League",
            "UEFA Champions League Qualifying",
            "UEFA Champions League Group Stage",
        ),
    ),
    "premier-league": Competition(
        slug="premier-league",
        league_id="4328",
        name="English Premier League",
        country="England",
        aliases=("Premier League", "EPL"),
    ),
}

DEFAULT_COMPETITIONS: Tuple[str, ...] = ("turkish-super-league", "champions-league")
