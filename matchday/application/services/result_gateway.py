from __future__ import annotations

import logging
import re
import time
from datetime import date as Date
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol, Sequence

from matchday.config.competitions import COMPETITIONS, DEFAULT_COMPETITIONS, Competition
from matchday.config.settings import DETAIL_REQUEST_DELAY_SECONDS, MAX_API_CALLS
from matchday.domain.entities.match import Match, MatchResult, Score, TeamRef
from matchday.domain.value_objects.enums import MatchStatus
from matchday.errors import APIError, EventValidationError, RateLimitError

logger = logging.getLogger(__name__)


class _ClientProto(Protocol):
    def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any: ...


# league id -> "current season" reported by the provider. Lives for the whole
# process and is never invalidated.
_CURRENT_SEASONS: dict[str, str] = {}

_STATUS_ALIASES = {
    "NOT STARTED": MatchStatus.SCHEDULED,
    "NS": MatchStatus.SCHEDULED,
    "SCHEDULED": MatchStatus.SCHEDULED,
    "FINISHED": MatchStatus.FINISHED,
    "FT": MatchStatus.FINISHED,
    "FULL TIME": MatchStatus.FINISHED,
    "MATCH FINISHED": MatchStatus.FINISHED,
    "AET": MatchStatus.FINISHED,
    "PEN": MatchStatus.FINISHED,
    "POSTPONED": MatchStatus.POSTPONED,
    "PP": MatchStatus.POSTPONED,
}

_TZ_SUFFIX = re.compile(r"(?:Z|[+-]\d{2}:\d{2})$")


class ResultIngestionGateway:
    """Fetch schedules and finished results from TheSportsDB.

    - Upcoming fixtures come from ``eventsnextleague.php``; when that feed has no
      event belonging to the league, season schedules are tried in candidate order.
    - Every event is validated against the requested league before use, since
      the provider occasionally returns events of unrelated leagues.
    - Detail lookups in a bulk call are serialized, spaced by a fixed delay and
      capped by an explicit request budget.
    """

    def __init__(
        self,
        client: Optional[_ClientProto] = None,
        *,
        competitions: Optional[Mapping[str, Competition]] = None,
        season_override: Optional[str] = None,
        detail_delay: float = DETAIL_REQUEST_DELAY_SECONDS,
        max_api_calls: int = MAX_API_CALLS,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._client: _ClientProto
        if client is None:
            # Lazy import so tests injecting fakes never build an HTTP session
            from matchday.infrastructure.sportsdb_client import SportsDBClient as _Client

            self._client = _Client()
        else:
            self._client = client
        self._competitions = dict(competitions or COMPETITIONS)
        self._season_override = season_override
        self._detail_delay = float(detail_delay)
        self._max_api_calls = int(max_api_calls)
        self._now = now or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Schedules
    # ------------------------------------------------------------------
    def get_upcoming_matches(
        self,
        competitions: Optional[Sequence[str]] = None,
        date_from: Date | datetime | str | None = None,
        date_to: Date | datetime | str | None = None,
        season: Optional[str] = None,
    ) -> list[Match]:
        by_id: dict[str, Match] = {}
        for comp in self._resolve(competitions):
            payload = self._client.get("eventsnextleague.php", params={"id": comp.league_id})
            events = self._validated(_extract_events(payload), comp)
            if not events:
                events = self._season_fallback(comp, season)
            for event in events:
                match = map_event_to_match(event, comp)
                if match is not None:
                    by_id[match.id] = match

        start = _parse_date_bound(date_from, end_of_day=False)
        end = _parse_date_bound(date_to, end_of_day=True)
        matches = [
            m
            for m in by_id.values()
            if (start is None or m.kickoff_time >= start) and (end is None or m.kickoff_time <= end)
        ]
        matches.sort(key=lambda m: m.kickoff_time)
        return matches

    def season_candidates(self, comp: Competition, season: Optional[str] = None) -> list[str]:
        """Seasons to try, each followed by its predecessor, without duplicates."""
        bases = [
            season or self._season_override,
            *comp.season_hints,
            self._current_season(comp.league_id),
            derive_season(self._now()),
        ]
        out: list[str] = []
        for base in bases:
            if not base:
                continue
            for candidate in (base, previous_season(base)):
                if candidate and candidate not in out:
                    out.append(candidate)
        return out

    def _season_fallback(self, comp: Competition, season: Optional[str]) -> list[Mapping[str, Any]]:
        for candidate in self.season_candidates(comp, season):
            try:
                payload = self._client.get(
                    "eventsseason.php", params={"id": comp.league_id, "s": candidate}
                )
            except APIError as exc:
                logger.warning(
                    "Season schedule unavailable",
                    extra={"competition": comp.slug, "season": candidate, "error": str(exc)},
                )
                continue
            events = self._validated(_extract_events(payload), comp)
            if events:
                logger.info(
                    "Using season schedule",
                    extra={"competition": comp.slug, "season": candidate, "events": len(events)},
                )
                return events
        logger.warning("No schedule found for competition", extra={"competition": comp.slug})
        return []

    def _current_season(self, league_id: str) -> Optional[str]:
        if league_id in _CURRENT_SEASONS:
            return _CURRENT_SEASONS[league_id]
        try:
            payload = self._client.get("lookupleague.php", params={"id": league_id})
        except APIError as exc:
            logger.warning(
                "League lookup failed", extra={"league_id": league_id, "error": str(exc)}
            )
            return None
        leagues = payload.get("leagues") if isinstance(payload, Mapping) else None
        if not isinstance(leagues, list) or not leagues or not isinstance(leagues[0], Mapping):
            return None
        current = str(leagues[0].get("strCurrentSeason") or "").strip()
        if not current:
            return None
        _CURRENT_SEASONS[league_id] = current
        return current

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------
    def get_finished_matches(
        self, competitions: Optional[Sequence[str]] = None, limit: Optional[int] = None
    ) -> list[MatchResult]:
        results: list[MatchResult] = []
        for comp in self._resolve(competitions):
            payload = self._client.get("eventspastleague.php", params={"id": comp.league_id})
            for event in self._validated(_extract_events(payload), comp):
                result = map_event_to_result(event, comp, force_finished=True)
                if result is not None and result.is_final:
                    results.append(result)
        results.sort(
            key=lambda r: r.kickoff_time or datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )
        return results[:limit] if limit is not None else results

    def get_event_result(self, match_id: str) -> Optional[MatchResult]:
        """Return the final result of one event, ``None`` if it has not finished."""
        payload = self._client.get("lookupevent.php", params={"id": match_id})
        events = _extract_events(payload)
        if not events:
            return None
        result = map_event_to_result(events[0])
        if result is None or not result.is_final or result.status != MatchStatus.FINISHED.value:
            return None
        return result

    def fetch_event_results(
        self, match_ids: Iterable[str], max_api_calls: Optional[int] = None
    ) -> dict[str, MatchResult]:
        """Look up several events one by one within a request budget.

        Stops early on a rate-limit response; other API errors skip the event.
        """
        budget = self._max_api_calls if max_api_calls is None else int(max_api_calls)
        out: dict[str, MatchResult] = {}
        calls = 0
        for match_id in match_ids:
            if calls >= budget:
                logger.info("Detail request budget exhausted", extra={"max_api_calls": budget})
                break
            if calls:
                time.sleep(self._detail_delay)
            calls += 1
            try:
                result = self.get_event_result(match_id)
            except RateLimitError as exc:
                logger.warning("Rate limited, stopping bulk fetch", extra={"error": str(exc)})
                break
            except APIError as exc:
                logger.warning(
                    "Event lookup failed", extra={"match_id": match_id, "error": str(exc)}
                )
                continue
            if result is not None:
                out[str(match_id)] = result
        return out

    # ------------------------------------------------------------------
    def _resolve(self, slugs: Optional[Sequence[str]]) -> list[Competition]:
        out: list[Competition] = []
        for slug in slugs or DEFAULT_COMPETITIONS:
            comp = self._competitions.get(slug)
            if comp is None:
                logger.warning("Unknown competition skipped", extra={"competition": slug})
                continue
            out.append(comp)
        return out

    def _validated(
        self, events: Sequence[Mapping[str, Any]], comp: Competition
    ) -> list[Mapping[str, Any]]:
        accepted: list[Mapping[str, Any]] = []
        for event in events:
            try:
                validate_event(event, comp)
            except EventValidationError as exc:
                logger.debug("Rejected event", extra={"competition": comp.slug, "reason": str(exc)})
                continue
            accepted.append(event)
        return accepted


# ----------------------------------------------------------------------
# Event mapping helpers
# ----------------------------------------------------------------------
def _norm(value: Any) -> str:
    return value.strip().lower() if isinstance(value, str) else ""


def validate_event(event: Mapping[str, Any], comp: Competition) -> None:
    """Raise :class:`EventValidationError` unless ``event`` belongs to ``comp``."""
    event_league = str(event.get("idLeague") or "").strip()
    if event_league and event_league == comp.league_id:
        return
    names = [n for n in (_norm(event.get("strLeague")), _norm(event.get("strLeagueAlternate"))) if n]
    aliases = [_norm(n) for n in comp.names if _norm(n)]
    if any(alias in name for name in names for alias in aliases):
        return
    if not event_league and not names and _norm(event.get("strCountry")) == _norm(comp.country):
        return
    raise EventValidationError(
        f"event {event.get('idEvent')} (league {event_league or '?'}) does not belong to {comp.slug}"
    )


def normalize_status(status: Any) -> str:
    if not isinstance(status, str) or not status.strip():
        return MatchStatus.SCHEDULED.value
    normalized = status.strip().upper()
    alias = _STATUS_ALIASES.get(normalized)
    return alias.value if alias is not None else normalized


def parse_kickoff(event: Mapping[str, Any]) -> Optional[datetime]:
    """Kickoff from ``strTimestamp``, then date and time, then the bare date (UTC assumed)."""
    date_part = str(event.get("dateEvent") or "").strip()
    time_part = str(event.get("strTime") or "").strip()
    candidates = [str(event.get("strTimestamp") or "").strip()]
    if date_part and time_part:
        candidates.append(f"{date_part}T{time_part}")
    if date_part:
        candidates.append(f"{date_part}T00:00:00")
    for candidate in candidates:
        if not candidate:
            continue
        iso = candidate.replace(" ", "T", 1)
        if not _TZ_SUFFIX.search(iso):
            iso += "+00:00"
        try:
            parsed = datetime.fromisoformat(iso.replace("Z", "+00:00"))
        except ValueError:
            continue
        return parsed.astimezone(timezone.utc)
    return None


def parse_goal_details(*details: Any) -> list[str]:
    """Scorer names from goal-detail strings such as ``"12':Name;45':Other"``."""
    scorers: list[str] = []
    seen: set[str] = set()
    for detail in details:
        if not isinstance(detail, str):
            continue
        for chunk in detail.split(";"):
            name = chunk.split(":", 1)[1] if ":" in chunk else chunk
            name = name.strip()
            if name and name.lower() not in seen:
                seen.add(name.lower())
                scorers.append(name)
    return scorers


def map_event_to_match(event: Mapping[str, Any], comp: Competition) -> Optional[Match]:
    kickoff = parse_kickoff(event)
    if kickoff is None or not event.get("idEvent"):
        return None
    competition = str(event.get("strLeague") or event.get("strLeagueAlternate") or "").strip()
    return Match(
        id=str(event["idEvent"]),
        league_id=str(event.get("idLeague") or comp.league_id),
        competition=competition or comp.name,
        competition_code=comp.slug,
        competition_country=comp.country,
        kickoff_time=kickoff,
        venue=str(event.get("strVenue") or "TBD"),
        status=normalize_status(event.get("strStatus")),
        matchday=_safe_int(event.get("intRound")),
        season=event.get("strSeason") or None,
        home_team=_team(event, "Home"),
        away_team=_team(event, "Away"),
    )


def map_event_to_result(
    event: Mapping[str, Any],
    comp: Optional[Competition] = None,
    *,
    force_finished: bool = False,
) -> Optional[MatchResult]:
    if not event.get("idEvent"):
        return None
    home = _safe_int(event.get("intHomeScore"))
    away = _safe_int(event.get("intAwayScore"))
    score = Score(home=home, away=away) if home is not None and away is not None else None
    status = MatchStatus.FINISHED.value if force_finished else normalize_status(event.get("strStatus"))
    competition = str(event.get("strLeague") or "").strip() or (comp.name if comp else None)
    return MatchResult(
        match_id=str(event["idEvent"]),
        final_score=score,
        status=status,
        scorers=parse_goal_details(event.get("strHomeGoalDetails"), event.get("strAwayGoalDetails")),
        home_team=event.get("strHomeTeam"),
        away_team=event.get("strAwayTeam"),
        competition=competition,
        kickoff_time=parse_kickoff(event),
        venue=event.get("strVenue") or None,
    )


def _team(event: Mapping[str, Any], side: str) -> TeamRef:
    name = str(event.get(f"str{side}Team") or "TBD")
    return TeamRef(
        id=str(event[f"id{side}Team"]) if event.get(f"id{side}Team") else None,
        name=name,
        short_name=event.get(f"str{side}TeamShort") or name,
        logo=event.get(f"str{side}TeamBadge") or None,
    )


def _extract_events(payload: Any) -> list[Mapping[str, Any]]:
    if isinstance(payload, Mapping):
        events = payload.get("events")
        if isinstance(events, list):
            return [e for e in events if isinstance(e, Mapping)]
    return []


def _safe_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_date_bound(value: Date | datetime | str | None, *, end_of_day: bool) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        if "T" in value:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        value = Date.fromisoformat(value)
    clock = (23, 59, 59) if end_of_day else (0, 0, 0)
    return datetime(value.year, value.month, value.day, *clock, tzinfo=timezone.utc)


def derive_season(now: datetime) -> str:
    """Season label for ``now``; a season starts in July."""
    start = now.year if now.month >= 7 else now.year - 1
    return f"{start}-{start + 1}"


def previous_season(season: str) -> Optional[str]:
    parts = season.split("-")
    try:
        years = [int(p) for p in parts]
    except ValueError:
        return None
    if len(years) == 2:
        return f"{years[0] - 1}-{years[1] - 1}"
    if len(years) == 1:
        return str(years[0] - 1)
    return None
