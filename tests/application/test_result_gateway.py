from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generator, List, Mapping, Optional

import pytest

import matchday.application.services.result_gateway as gw_mod
from matchday.application.services.result_gateway import (
    ResultIngestionGateway,
    derive_season,
    map_event_to_result,
    normalize_status,
    parse_goal_details,
    parse_kickoff,
    previous_season,
    validate_event,
)
from matchday.config.competitions import COMPETITIONS
from matchday.errors import APIError, EventValidationError, RateLimitError, ServiceUnavailableError

SUPER_LIG = COMPETITIONS["turkish-super-league"]
NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

Handler = Callable[[Mapping[str, Any]], Any]


class _FakeClient:
    """Routes each endpoint to a handler; records every call."""

    def __init__(self, routes: Dict[str, Handler]) -> None:
        self.routes = routes
        self.calls: List[tuple[str, Dict[str, Any]]] = []

    def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        self.calls.append((path, dict(params or {})))
        handler = self.routes.get(path)
        if handler is None:
            return {}
        return handler(params or {})

    def paths(self) -> list[str]:
        return [p for p, _ in self.calls]


@pytest.fixture(autouse=True)
def clear_season_cache() -> Generator[None, None, None]:
    gw_mod._CURRENT_SEASONS.clear()
    yield
    gw_mod._CURRENT_SEASONS.clear()


def _event(event_id: str, **overrides: Any) -> Dict[str, Any]:
    event = {
        "idEvent": event_id,
        "idLeague": "4339",
        "strLeague": "Turkish Super Lig",
        "strHomeTeam": "Galatasaray",
        "strAwayTeam": "Fenerbahce",
        "idHomeTeam": "134",
        "idAwayTeam": "135",
        "dateEvent": "2025-03-15",
        "strTime": "17:00:00",
        "strStatus": "Not Started",
        "strVenue": "Rams Park",
        "intRound": "25",
        "strSeason": "2024-2025",
    }
    event.update(overrides)
    return event


def _gateway(client: _FakeClient, **kwargs: Any) -> ResultIngestionGateway:
    kwargs.setdefault("now", lambda: NOW)
    kwargs.setdefault("detail_delay", 2.1)
    return ResultIngestionGateway(client=client, **kwargs)


# ----------------------------------------------------------------------
# Validation and mapping
# ----------------------------------------------------------------------
def test_validate_event_by_id_name_and_country() -> None:
    validate_event({"idLeague": "4339"}, SUPER_LIG)
    validate_event({"idLeague": "9999", "strLeague": "Trendyol Super Lig 2024"}, SUPER_LIG)
    validate_event({"strCountry": "Turkey"}, SUPER_LIG)

    with pytest.raises(EventValidationError):
        validate_event({"idLeague": "4328", "strLeague": "English Premier League"}, SUPER_LIG)
    # Country is only consulted when the event has no league information at all
    with pytest.raises(EventValidationError):
        validate_event({"idLeague": "4328", "strCountry": "Turkey"}, SUPER_LIG)


def test_normalize_status_and_kickoff() -> None:
    assert normalize_status("Match Finished") == "FINISHED"
    assert normalize_status("FT") == "FINISHED"
    assert normalize_status("") == "SCHEDULED"
    assert normalize_status("1H") == "1H"

    assert parse_kickoff({"strTimestamp": "2025-03-15T17:00:00+03:00"}) == datetime(
        2025, 3, 15, 14, 0, tzinfo=timezone.utc
    )
    assert parse_kickoff({"dateEvent": "2025-03-15", "strTime": "17:00:00"}) == datetime(
        2025, 3, 15, 17, 0, tzinfo=timezone.utc
    )
    assert parse_kickoff({"dateEvent": "2025-03-15"}) == datetime(2025, 3, 15, tzinfo=timezone.utc)
    assert parse_kickoff({}) is None


def test_parse_goal_details() -> None:
    assert parse_goal_details("12':Icardi;45':Mertens;", "78':Dzeko", None) == [
        "Icardi",
        "Mertens",
        "Dzeko",
    ]
    assert parse_goal_details("10':Icardi;55':icardi") == ["Icardi"]


def test_map_event_to_result() -> None:
    event = _event(
        "1",
        intHomeScore="2",
        intAwayScore="1",
        strStatus="Match Finished",
        strHomeGoalDetails="12':Icardi;45':Mertens",
        strAwayGoalDetails="78':Dzeko",
    )
    result = map_event_to_result(event)
    assert result is not None
    assert result.is_final and result.final_score is not None
    assert (result.final_score.home, result.final_score.away) == (2, 1)
    assert result.status == "FINISHED"
    assert result.scorers == ("Icardi", "Mertens", "Dzeko")
    assert result.competition == "Turkish Super Lig"

    unplayed = map_event_to_result(_event("2", intHomeScore=None, intAwayScore=None))
    assert unplayed is not None and not unplayed.is_final


def test_season_helpers() -> None:
    assert derive_season(datetime(2025, 7, 1, tzinfo=timezone.utc)) == "2025-2026"
    assert derive_season(datetime(2025, 6, 30, tzinfo=timezone.utc)) == "2024-2025"
    assert previous_season("2024-2025") == "2023-2024"
    assert previous_season("2025") == "2024"
    assert previous_season("current") is None


# ----------------------------------------------------------------------
# Schedules
# ----------------------------------------------------------------------
def test_upcoming_filters_foreign_events_and_dates() -> None:
    client = _FakeClient(
        {
            "eventsnextleague.php": lambda p: {
                "events": [
                    _event("10", dateEvent="2025-03-15"),
                    _event("11", dateEvent="2025-03-20"),
                    _event("12", idLeague="4328", strLeague="English Premier League"),
                ]
            }
        }
    )
    gateway = _gateway(client)

    matches = gateway.get_upcoming_matches(["turkish-super-league"], "2025-03-14", "2025-03-16")

    assert [m.id for m in matches] == ["10"]
    m = matches[0]
    assert m.competition_code == "turkish-super-league"
    assert m.home_team.name == "Galatasaray" and m.away_team.id == "135"
    assert m.status == "SCHEDULED"
    assert m.matchday == 25
    assert client.paths() == ["eventsnextleague.php"]


def test_season_candidates_order_and_dedup() -> None:
    client = _FakeClient(
        {"lookupleague.php": lambda p: {"leagues": [{"strCurrentSeason": "2024-2025"}]}}
    )
    gateway = _gateway(client, season_override="2025-2026")

    candidates = gateway.season_candidates(SUPER_LIG)

    assert candidates == ["2025-2026", "2024-2025", "2023-2024"]
    # Current season lookup is cached for the process lifetime
    gateway.season_candidates(SUPER_LIG)
    assert client.paths().count("lookupleague.php") == 1
    assert gw_mod._CURRENT_SEASONS["4339"] == "2024-2025"


def test_season_fallback_when_next_feed_is_foreign() -> None:
    seasons_tried: list[str] = []

    def season_handler(params: Mapping[str, Any]) -> Any:
        seasons_tried.append(str(params["s"]))
        if params["s"] == "2024-2025":
            raise ServiceUnavailableError("down", status_code=503)
        if params["s"] == "2023-2024":
            return {"events": [_event("30", dateEvent="2024-05-01")]}
        return {"events": None}

    client = _FakeClient(
        {
            # The free tier sometimes answers with another league's fixtures
            "eventsnextleague.php": lambda p: {
                "events": [_event("99", idLeague="4328", strLeague="English Premier League")]
            },
            "lookupleague.php": lambda p: {"leagues": [{"strCurrentSeason": "2024-2025"}]},
            "eventsseason.php": season_handler,
        }
    )
    gateway = _gateway(client)

    matches = gateway.get_upcoming_matches(["turkish-super-league"])

    assert [m.id for m in matches] == ["30"]
    assert seasons_tried == ["2024-2025", "2023-2024"]


def test_unknown_competition_is_skipped() -> None:
    client = _FakeClient({})
    assert _gateway(client).get_upcoming_matches(["no-such-league"]) == []
    assert client.calls == []


# ----------------------------------------------------------------------
# Results
# ----------------------------------------------------------------------
def test_finished_matches_skip_unscored_and_sort_newest_first() -> None:
    client = _FakeClient(
        {
            "eventspastleague.php": lambda p: {
                "events": [
                    _event("1", dateEvent="2025-03-01", intHomeScore="1", intAwayScore="0"),
                    _event("2", dateEvent="2025-03-08", intHomeScore="2", intAwayScore="2"),
                    _event("3", dateEvent="2025-03-09", intHomeScore=None, intAwayScore=None),
                    _event("4", idLeague="4480", strLeague="UEFA Champions League",
                           intHomeScore="5", intAwayScore="0"),
                ]
            }
        }
    )
    results = _gateway(client).get_finished_matches(["turkish-super-league"], limit=5)

    assert [r.match_id for r in results] == ["2", "1"]
    assert all(r.status == "FINISHED" for r in results)


def test_event_result_only_when_finished() -> None:
    events: Dict[str, Any] = {
        "1": _event("1", strStatus="FT", intHomeScore="2", intAwayScore="0"),
        "2": _event("2", strStatus="1H", intHomeScore="1", intAwayScore="0"),
    }
    client = _FakeClient(
        {"lookupevent.php": lambda p: {"events": [events[p["id"]]] if p["id"] in events else None}}
    )
    gateway = _gateway(client)

    result = gateway.get_event_result("1")
    assert result is not None and result.final_score is not None
    assert result.final_score.home == 2
    assert gateway.get_event_result("2") is None
    assert gateway.get_event_result("3") is None


def test_bulk_fetch_respects_budget_and_spacing(monkeypatch: pytest.MonkeyPatch) -> None:
    sleeps: list[float] = []
    monkeypatch.setattr(gw_mod.time, "sleep", lambda s: sleeps.append(s))

    client = _FakeClient(
        {
            "lookupevent.php": lambda p: {
                "events": [_event(p["id"], strStatus="FT", intHomeScore="1", intAwayScore="1")]
            }
        }
    )
    gateway = _gateway(client)

    out = gateway.fetch_event_results([str(i) for i in range(8)], max_api_calls=5)

    assert list(out) == ["0", "1", "2", "3", "4"]
    assert len(client.calls) == 5
    assert len(sleeps) == 4
    assert all(s >= 2 for s in sleeps)


def test_bulk_fetch_stops_on_rate_limit_and_skips_other_errors(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(gw_mod.time, "sleep", lambda s: None)

    def handler(params: Mapping[str, Any]) -> Any:
        if params["id"] == "b":
            raise APIError("bad request", status_code=400)
        if params["id"] == "c":
            raise RateLimitError("429", status_code=429)
        return {"events": [_event(params["id"], strStatus="FT", intHomeScore="0", intAwayScore="0")]}

    client = _FakeClient({"lookupevent.php": handler})
    out = _gateway(client).fetch_event_results(["a", "b", "c", "d"], max_api_calls=10)

    assert list(out) == ["a"]
    assert [p["id"] for _, p in client.calls] == ["a", "b", "c"]


def test_lazy_client_is_not_built_when_injected(monkeypatch: pytest.MonkeyPatch) -> None:
    import matchday.infrastructure.sportsdb_client as client_mod

    def boom(*a: Any, **k: Any) -> Optional[Any]:
        raise AssertionError("real client must not be constructed")

    monkeypatch.setattr(client_mod, "SportsDBClient", boom)
    _gateway(_FakeClient({}))
