from typing import NewType

LeagueId = NewType("LeagueId", str)

GENERAL_LEAGUE_ID = LeagueId("general")


def prediction_key(user_id: str, match_id: str) -> str:
    """Composite document key of a prediction: one per (user, match)."""
    return f"{user_id}_{match_id}"
