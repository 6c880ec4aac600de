"""Collaborator contracts the core depends on but does not own."""

from matchday.domain.interfaces.leagues import LeaderboardInitializer, LeagueDirectory
from matchday.domain.interfaces.notifier import Notifier

__all__ = ["LeaderboardInitializer", "LeagueDirectory", "Notifier"]
