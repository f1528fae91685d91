import itertools
from collections.abc import Callable
from typing import Any

import pytest
from heliclockter import datetime_utc, timedelta

from arena.database import database
from arena.logic import adjudicator as adjudicator_module
from arena.logic import notifications, overdue, progression
from arena.logic import tournaments as tournaments_logic
from arena.logic.matches import resolution
from arena.logic.notifications import CollaboratorEvent
from arena.models.adjudication import (
    AdjudicationRequest,
    AdjudicationStatus,
    AdjudicationVerdict,
    VerifiedScores,
)
from arena.models.db.match import (
    EvidenceItem,
    EvidenceType,
    Match,
    MatchInsertable,
    MatchReport,
    MatchReportBody,
    MatchStatus,
    TeamMatchStats,
)
from arena.models.db.player_stats import PlayerStats
from arena.models.db.standing import StandingRecord, StandingWithTeamName
from arena.models.db.team import Team, TeamInsertable
from arena.models.db.tournament import (
    Tournament,
    TournamentBody,
    TournamentFormat,
    TournamentStatus,
)
from arena.routes import matches as matches_routes
from arena.routes import players as players_routes
from arena.routes import teams as teams_routes
from arena.routes import tournaments as tournaments_routes
from arena.routes import util as routes_util
from arena.sql import standings as standings_sql
from arena.utils.dates import start_of_day
from arena.utils.id_types import MatchId, TeamId, TournamentId, UserId

ORGANIZER = UserId("organizer-1")

_PATCHED_MODULES = (
    resolution,
    progression,
    tournaments_logic,
    overdue,
    standings_sql,
    routes_util,
    tournaments_routes,
    teams_routes,
    matches_routes,
    players_routes,
)


class _DummyTransaction:
    async def __aenter__(self) -> "_DummyTransaction":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        return False


class FakeAdjudicator:
    """Hands out queued verdicts in order. Queued exceptions are raised instead."""

    def __init__(self, *outcomes: AdjudicationVerdict | Exception) -> None:
        self.outcomes = list(outcomes)
        self.requests: list[AdjudicationRequest] = []

    async def adjudicate(self, request: AdjudicationRequest) -> AdjudicationVerdict:
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def days_ago(days: int) -> datetime_utc:
    return start_of_day(datetime_utc.now()) - timedelta(days=days)


def sample_stats(**overrides: int) -> TeamMatchStats:
    values = {
        "possession": 55,
        "shots": 10,
        "shots_on_target": 6,
        "fouls": 1,
        "offsides": 0,
        "passes": 200,
        "successful_passes": 165,
        "interceptions": 12,
        "tackles": 11,
        "saves": 3,
    }
    return TeamMatchStats(**{**values, **overrides})


def verified(
    home: int,
    away: int,
    *,
    home_stats: TeamMatchStats | None = None,
    away_stats: TeamMatchStats | None = None,
    pk_home: int | None = None,
    pk_away: int | None = None,
    cheating_flag: UserId | None = None,
) -> AdjudicationVerdict:
    return AdjudicationVerdict(
        verification_status=AdjudicationStatus.VERIFIED,
        verified_scores=VerifiedScores(home=home, away=away, pk_home=pk_home, pk_away=pk_away),
        reasoning="Scores match on both screenshots.",
        home_stats=home_stats,
        away_stats=away_stats,
        cheating_flag=cheating_flag,
    )


def evidence(image_uri: str = "https://cdn.example.com/stats.png") -> list[EvidenceItem]:
    return [EvidenceItem(type=EvidenceType.MATCH_STATS, image_uri=image_uri)]


def report_body(home_score: int, away_score: int, **extra: Any) -> MatchReportBody:
    return MatchReportBody(
        home_score=home_score, away_score=away_score, evidence=evidence(), **extra
    )


def report(submitted_by: str, home_score: int, away_score: int) -> MatchReport:
    return MatchReport(
        submitted_by=UserId(submitted_by),
        home_score=home_score,
        away_score=away_score,
        evidence=evidence(),
        submitted_at=datetime_utc.now(),
    )


class InMemoryArena:
    """Stands in for the SQL layer. Every sql_* function the logic imports is replaced."""

    def __init__(self) -> None:
        self.tournaments: dict[int, Tournament] = {}
        self.teams: dict[int, Team] = {}
        self.matches: dict[int, Match] = {}
        self.player_stats: dict[str, PlayerStats] = {}
        self.standings: dict[int, list[StandingRecord]] = {}
        self.events: list[tuple[CollaboratorEvent, dict[str, Any]]] = []
        self.locked_tournaments: list[TournamentId] = []
        self._ids = itertools.count(1)

    def install(
        self, monkeypatch: pytest.MonkeyPatch, adjudicator: FakeAdjudicator | None = None
    ) -> "InMemoryArena":
        fakes = self._fakes()
        for module in _PATCHED_MODULES:
            for name, fake in fakes.items():
                if hasattr(module, name):
                    monkeypatch.setattr(module, name, fake)

        monkeypatch.setattr(database, "transaction", lambda: _DummyTransaction())
        monkeypatch.setattr(notifications, "publish_event", self.record_event)
        monkeypatch.setattr(adjudicator_module, "adjudicator", adjudicator or FakeAdjudicator())
        return self

    def _fakes(self) -> dict[str, Callable[..., Any]]:
        return {
            "sql_get_tournament": self.get_tournament,
            "sql_get_tournaments": self.get_tournaments,
            "sql_create_tournament": self.create_tournament,
            "sql_update_tournament_status": self.update_tournament_status,
            "sql_set_last_auto_resolved_at": self.set_last_auto_resolved_at,
            "sql_increment_team_count": self.increment_team_count,
            "sql_delete_tournament": self.delete_tournament,
            "sql_lock_tournament": self.lock_tournament,
            "sql_get_team": self.get_team,
            "sql_get_teams": self.get_teams,
            "sql_get_team_by_captain": self.get_team_by_captain,
            "sql_create_team": self.create_team,
            "sql_set_team_approval": self.set_team_approval,
            "sql_add_team_performance_points": self.add_team_performance_points,
            "sql_get_match": self.get_match,
            "sql_get_match_for_update": self.get_match,
            "sql_get_matches": self.get_matches,
            "sql_get_overdue_match_ids": self.get_overdue_match_ids,
            "sql_create_matches": self.create_matches,
            "sql_update_match": self.update_match,
            "sql_get_player_stats": self.get_player_stats,
            "sql_get_player_stats_for_update": self.get_player_stats_for_update,
            "sql_save_player_stats": self.save_player_stats,
            "sql_get_standings": self.get_standings,
            "_replace_standings": self.replace_standings,
        }

    def add_tournament(
        self,
        *,
        format: TournamentFormat = TournamentFormat.LEAGUE,
        status: TournamentStatus = TournamentStatus.IN_PROGRESS,
        penalties: bool = False,
        home_and_away: bool = False,
        max_teams: int = 16,
        registration_end: datetime_utc | None = None,
        start_date: datetime_utc | None = None,
        end_date: datetime_utc | None = None,
    ) -> Tournament:
        tournament = Tournament(
            id=TournamentId(next(self._ids)),
            name=f"{format.value} tournament",
            organizer_id=ORGANIZER,
            format=format,
            max_teams=max_teams,
            home_and_away=home_and_away,
            penalties=penalties,
            status=status,
            registration_end=registration_end or days_ago(10),
            start_date=start_date or days_ago(7),
            end_date=end_date or days_ago(-30),
            created=days_ago(20),
        )
        self.tournaments[tournament.id] = tournament
        return tournament

    def add_team(
        self, tournament: Tournament, name: str, captain_id: str, *, is_approved: bool = True
    ) -> Team:
        team = Team(
            id=TeamId(next(self._ids)),
            tournament_id=tournament.id,
            name=name,
            captain_id=UserId(captain_id),
            is_approved=is_approved,
            created=days_ago(9),
        )
        self.teams[team.id] = team
        self.tournaments[tournament.id] = self.tournaments[tournament.id].model_copy(
            update={"team_count": self.tournaments[tournament.id].team_count + 1}
        )
        return team

    def add_teams(self, tournament: Tournament, count: int) -> list[Team]:
        return [
            self.add_team(tournament, f"Team {index}", f"captain-{index}")
            for index in range(1, count + 1)
        ]

    def add_match(
        self,
        tournament: Tournament,
        home: Team,
        away: Team,
        *,
        round: str = "Round 1",
        match_day: datetime_utc | None = None,
        **fields: Any,
    ) -> Match:
        match = Match(
            id=MatchId(next(self._ids)),
            tournament_id=tournament.id,
            home_team_id=home.id,
            away_team_id=away.id,
            host_id=home.id,
            round=round,
            match_day=match_day or start_of_day(datetime_utc.now()),
            created=days_ago(7),
            **fields,
        )
        self.matches[match.id] = match
        return match

    def approve_directly(self, match: Match, home_score: int, away_score: int) -> Match:
        approved = self.matches[match.id].model_copy(
            update={
                "status": MatchStatus.APPROVED,
                "home_score": home_score,
                "away_score": away_score,
            }
        )
        self.matches[match.id] = approved
        return approved

    def events_of(self, event: CollaboratorEvent) -> list[dict[str, Any]]:
        return [payload for kind, payload in self.events if kind is event]

    async def record_event(self, event: CollaboratorEvent, payload: dict[str, Any]) -> bool:
        self.events.append((event, payload))
        return True

    async def get_tournament(self, tournament_id: TournamentId) -> Tournament | None:
        return self.tournaments.get(tournament_id)

    async def get_tournaments(self, status: TournamentStatus | None = None) -> list[Tournament]:
        return [t for t in self.tournaments.values() if status is None or t.status is status]

    async def create_tournament(self, body: TournamentBody, organizer_id: UserId) -> TournamentId:
        tournament = Tournament(
            id=TournamentId(next(self._ids)),
            organizer_id=organizer_id,
            created=datetime_utc.now(),
            **body.model_dump(),
        )
        self.tournaments[tournament.id] = tournament
        return tournament.id

    async def update_tournament_status(
        self,
        tournament_id: TournamentId,
        new_status: TournamentStatus,
        *,
        ended_at: datetime_utc | None = None,
    ) -> None:
        tournament = self.tournaments[tournament_id]
        self.tournaments[tournament_id] = tournament.model_copy(
            update={"status": new_status, "ended_at": ended_at or tournament.ended_at}
        )

    async def set_last_auto_resolved_at(
        self, tournament_id: TournamentId, resolved_at: datetime_utc
    ) -> None:
        self.tournaments[tournament_id] = self.tournaments[tournament_id].model_copy(
            update={"last_auto_resolved_at": resolved_at}
        )

    async def increment_team_count(self, tournament_id: TournamentId) -> int | None:
        tournament = self.tournaments[tournament_id]
        if tournament.team_count >= tournament.max_teams:
            return None
        self.tournaments[tournament_id] = tournament.model_copy(
            update={"team_count": tournament.team_count + 1}
        )
        return tournament.team_count + 1

    async def delete_tournament(self, tournament_id: TournamentId) -> None:
        self.matches = {k: m for k, m in self.matches.items() if m.tournament_id != tournament_id}
        self.teams = {k: t for k, t in self.teams.items() if t.tournament_id != tournament_id}
        self.standings.pop(tournament_id, None)
        self.tournaments.pop(tournament_id, None)

    async def lock_tournament(self, tournament_id: TournamentId) -> None:
        self.locked_tournaments.append(tournament_id)

    async def get_team(self, team_id: TeamId) -> Team | None:
        return self.teams.get(team_id)

    async def get_teams(
        self, tournament_id: TournamentId, *, approved_only: bool = False
    ) -> list[Team]:
        return [
            team
            for team in self.teams.values()
            if team.tournament_id == tournament_id and (team.is_approved or not approved_only)
        ]

    async def get_team_by_captain(
        self, tournament_id: TournamentId, captain_id: UserId
    ) -> Team | None:
        teams = await self.get_teams(tournament_id)
        return next((team for team in teams if team.is_captain(captain_id)), None)

    async def create_team(self, team: TeamInsertable) -> TeamId:
        team_id = TeamId(next(self._ids))
        self.teams[team_id] = Team(id=team_id, **team.model_dump())
        return team_id

    async def set_team_approval(self, team_id: TeamId, is_approved: bool) -> None:
        self.teams[team_id] = self.teams[team_id].model_copy(update={"is_approved": is_approved})

    async def add_team_performance_points(self, team_id: TeamId, delta: int) -> None:
        team = self.teams[team_id]
        self.teams[team_id] = team.model_copy(
            update={"performance_points": team.performance_points + delta}
        )

    async def get_match(self, match_id: MatchId) -> Match | None:
        return self.matches.get(match_id)

    async def get_matches(
        self,
        tournament_id: TournamentId,
        *,
        statuses: list[MatchStatus] | None = None,
        rounds: list[str] | None = None,
    ) -> list[Match]:
        found = [
            match
            for match in self.matches.values()
            if match.tournament_id == tournament_id
            and (statuses is None or match.status in statuses)
            and (rounds is None or match.round in rounds)
        ]
        return sorted(found, key=lambda match: (match.match_day, match.id))

    async def get_overdue_match_ids(
        self, day_start: datetime_utc, tournament_id: TournamentId | None = None
    ) -> list[MatchId]:
        waiting = (
            MatchStatus.SCHEDULED,
            MatchStatus.AWAITING_CONFIRMATION,
            MatchStatus.NEEDS_SECONDARY_EVIDENCE,
        )
        return [
            match.id
            for match in sorted(self.matches.values(), key=lambda m: (m.match_day, m.id))
            if match.match_day < day_start
            and (tournament_id is None or match.tournament_id == tournament_id)
            and (
                match.status in waiting
                or (match.status is MatchStatus.DISPUTED and not match.auto_resolution_attempted)
            )
        ]

    async def create_matches(self, matches: list[MatchInsertable]) -> None:
        for match in matches:
            match_id = MatchId(next(self._ids))
            self.matches[match_id] = Match.model_validate({**match.model_dump(), "id": match_id})

    async def update_match(self, match: Match) -> None:
        self.matches[match.id] = match

    async def get_player_stats(self, user_id: UserId) -> PlayerStats | None:
        return self.player_stats.get(str(user_id))

    async def get_player_stats_for_update(self, user_id: UserId) -> PlayerStats:
        return self.player_stats.get(str(user_id)) or PlayerStats(user_id=user_id)

    async def save_player_stats(self, stats: PlayerStats) -> None:
        self.player_stats[str(stats.user_id)] = stats

    async def replace_standings(
        self, tournament_id: TournamentId, records: list[StandingRecord]
    ) -> None:
        self.standings[tournament_id] = records

    async def get_standings(self, tournament_id: TournamentId) -> list[StandingWithTeamName]:
        return [
            StandingWithTeamName(
                id=index,
                tournament_id=tournament_id,
                team_name=self.teams[record.team_id].name,
                goal_difference=record.goal_difference,
                **record.model_dump(),
            )
            for index, record in enumerate(self.standings.get(tournament_id, []), 1)
        ]
