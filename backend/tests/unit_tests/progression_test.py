import random
import re

import pytest
from fastapi import HTTPException

from arena.config import config
from arena.logic.matches.resolution import override_match_result
from arena.logic.notifications import CollaboratorEvent
from arena.logic.progression import progress_tournament, stage_name
from arena.logic.ranking.standings import calculate_standings
from arena.logic.scheduling.swiss import get_max_swiss_rounds
from arena.logic.tournaments import start_tournament
from arena.models.db.match import Match, MatchOverrideBody, MatchStatus
from arena.models.db.tournament import Tournament, TournamentFormat, TournamentStatus
from arena.utils.id_types import UserId
from tests.unit_tests.fakes import ORGANIZER, InMemoryArena, days_ago


def _open_tournament(arena: InMemoryArena, format: TournamentFormat, teams: int) -> Tournament:
    tournament = arena.add_tournament(
        format=format,
        status=TournamentStatus.OPEN_FOR_REGISTRATION,
        registration_end=days_ago(1),
        start_date=days_ago(-2),
        end_date=days_ago(-20),
    )
    arena.add_teams(tournament, teams)
    return tournament


def _matches_in(arena: InMemoryArena, tournament: Tournament, stage: str) -> list[Match]:
    return sorted(
        (
            match
            for match in arena.matches.values()
            if match.tournament_id == tournament.id and stage_name(match.round) == stage
        ),
        key=lambda match: match.id,
    )


def _home_wins(arena: InMemoryArena, matches: list[Match]) -> None:
    for match in matches:
        arena.approve_directly(match, 2, 0)


def test_stage_name() -> None:
    assert stage_name("Group B") == "Group stage"
    assert stage_name(" Semi-finals ") == "Semi-finals"
    assert stage_name("Swiss Round 2") == "Swiss Round 2"


@pytest.mark.asyncio
async def test_cup_progresses_from_groups_to_final(monkeypatch: pytest.MonkeyPatch) -> None:
    arena = InMemoryArena().install(monkeypatch)
    tournament = _open_tournament(arena, TournamentFormat.CUP, 8)

    started = await start_tournament(tournament.id, ORGANIZER, rng=random.Random(7))
    assert started.status is TournamentStatus.READY_TO_START
    group_matches = _matches_in(arena, tournament, "Group stage")
    assert len(group_matches) == 12
    assert {match.round for match in group_matches} == {"Group A", "Group B"}

    with pytest.raises(
        HTTPException,
        match=re.escape(
            "400: Cannot progress: 12 match(es) in Group stage are still not approved."
        ),
    ):
        await progress_tournament(tournament.id, ORGANIZER)

    _home_wins(arena, group_matches)
    semis = await progress_tournament(tournament.id, ORGANIZER)

    assert (semis.stage, semis.matches_created, semis.already_progressed) == (
        "Semi-finals",
        2,
        False,
    )
    assert arena.tournaments[tournament.id].status is TournamentStatus.IN_PROGRESS
    semi_matches = _matches_in(arena, tournament, "Semi-finals")
    assert all(match.match_day > group_matches[-1].match_day for match in semi_matches)

    with pytest.raises(
        HTTPException,
        match=re.escape("400: Cannot progress: 2 match(es) in Semi-finals are still not"),
    ):
        await progress_tournament(tournament.id, ORGANIZER)

    repeated = await progress_tournament(tournament.id, ORGANIZER, expected_stage="Group stage")
    assert repeated.already_progressed
    assert repeated.stage == "Semi-finals"
    assert len(_matches_in(arena, tournament, "Semi-finals")) == 2

    _home_wins(arena, semi_matches)
    final = await progress_tournament(tournament.id, ORGANIZER, expected_stage="Semi-finals")
    assert (final.stage, final.matches_created) == ("Final", 1)

    (final_match,) = _matches_in(arena, tournament, "Final")
    assert {final_match.home_team_id, final_match.away_team_id} == {
        match.home_team_id for match in semi_matches
    }

    await override_match_result(
        final_match.id, ORGANIZER, MatchOverrideBody(home_score=3, away_score=2)
    )
    assert arena.tournaments[tournament.id].status is TournamentStatus.COMPLETED

    with pytest.raises(HTTPException, match=re.escape("400: Cannot progress a tournament")):
        await progress_tournament(tournament.id, ORGANIZER)


@pytest.mark.asyncio
async def test_swiss_second_round_avoids_rematches(monkeypatch: pytest.MonkeyPatch) -> None:
    arena = InMemoryArena().install(monkeypatch)
    tournament = _open_tournament(arena, TournamentFormat.SWISS, 8)

    await start_tournament(tournament.id, ORGANIZER, rng=random.Random(11))
    first_round = _matches_in(arena, tournament, "Swiss Round 1")
    assert len(first_round) == 4
    _home_wins(arena, first_round)

    result = await progress_tournament(tournament.id, ORGANIZER, rng=random.Random(11))

    assert (result.stage, result.matches_created) == ("Swiss Round 2", 4)
    played = {frozenset((m.home_team_id, m.away_team_id)) for m in first_round}
    second_round = _matches_in(arena, tournament, "Swiss Round 2")
    assert all(frozenset((m.home_team_id, m.away_team_id)) not in played for m in second_round)
    winners = {match.home_team_id for match in first_round}
    for match in second_round:
        assert (match.home_team_id in winners) == (match.away_team_id in winners)


@pytest.mark.asyncio
async def test_league_and_non_organizer_cannot_progress(monkeypatch: pytest.MonkeyPatch) -> None:
    arena = InMemoryArena().install(monkeypatch)
    league = arena.add_tournament()
    cup = arena.add_tournament(format=TournamentFormat.CUP)

    with pytest.raises(HTTPException, match=re.escape("400: League tournaments have a single")):
        await progress_tournament(league.id, ORGANIZER)
    with pytest.raises(HTTPException, match=re.escape("403: Only the tournament organizer")):
        await progress_tournament(cup.id, UserId("captain-1"))
    with pytest.raises(HTTPException, match=re.escape("400: The tournament has no fixtures yet")):
        await progress_tournament(cup.id, ORGANIZER)


async def _play_swiss_rounds(arena: InMemoryArena, tournament: Tournament) -> list[Match]:
    """Approve every Swiss round with a home win, progressing until the round cap is reached."""
    played: list[Match] = []
    round_number = 1
    while True:
        current = _matches_in(arena, tournament, f"Swiss Round {round_number}")
        _home_wins(arena, current)
        played.extend(arena.matches[match.id] for match in current)
        if round_number == get_max_swiss_rounds(8):
            return played
        await progress_tournament(tournament.id, ORGANIZER)
        round_number += 1


@pytest.mark.asyncio
async def test_swiss_ends_in_seeded_knockout(monkeypatch: pytest.MonkeyPatch) -> None:
    arena = InMemoryArena().install(monkeypatch)
    tournament = _open_tournament(arena, TournamentFormat.SWISS, 8)
    await start_tournament(tournament.id, ORGANIZER, rng=random.Random(3))

    swiss_matches = await _play_swiss_rounds(arena, tournament)
    assert len(swiss_matches) == 28
    seeds = [record.team_id for record in calculate_standings(swiss_matches)]

    quarters = await progress_tournament(tournament.id, ORGANIZER)

    assert (quarters.stage, quarters.matches_created) == ("Quarter-finals", 4)
    quarter_matches = _matches_in(arena, tournament, "Quarter-finals")
    assert [(m.home_team_id, m.away_team_id) for m in quarter_matches] == [
        (seeds[0], seeds[7]),
        (seeds[3], seeds[4]),
        (seeds[1], seeds[6]),
        (seeds[2], seeds[5]),
    ]

    _home_wins(arena, quarter_matches)
    await progress_tournament(tournament.id, ORGANIZER)
    semi_matches = _matches_in(arena, tournament, "Semi-finals")
    assert [(m.home_team_id, m.away_team_id) for m in semi_matches] == [
        (seeds[0], seeds[3]),
        (seeds[1], seeds[2]),
    ]

    _home_wins(arena, semi_matches)
    await progress_tournament(tournament.id, ORGANIZER)
    (final_match,) = _matches_in(arena, tournament, "Final")
    assert (final_match.home_team_id, final_match.away_team_id) == (seeds[0], seeds[1])


@pytest.mark.asyncio
async def test_swiss_knockout_respects_size_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    arena = InMemoryArena().install(monkeypatch)
    monkeypatch.setattr(config, "swiss_max_knockout_teams", 4)
    tournament = _open_tournament(arena, TournamentFormat.SWISS, 8)
    await start_tournament(tournament.id, ORGANIZER, rng=random.Random(5))

    swiss_matches = await _play_swiss_rounds(arena, tournament)
    seeds = [record.team_id for record in calculate_standings(swiss_matches)]

    semis = await progress_tournament(tournament.id, ORGANIZER)

    assert (semis.stage, semis.matches_created) == ("Semi-finals", 2)
    semi_matches = _matches_in(arena, tournament, "Semi-finals")
    assert [(m.home_team_id, m.away_team_id) for m in semi_matches] == [
        (seeds[0], seeds[3]),
        (seeds[1], seeds[2]),
    ]


@pytest.mark.asyncio
async def test_league_completes_with_last_approval(monkeypatch: pytest.MonkeyPatch) -> None:
    arena = InMemoryArena().install(monkeypatch)
    tournament = arena.add_tournament()
    teams = arena.add_teams(tournament, 4)
    first = arena.add_match(tournament, teams[0], teams[1])
    last = arena.add_match(tournament, teams[2], teams[3])

    await override_match_result(first.id, ORGANIZER, MatchOverrideBody(home_score=1, away_score=0))
    assert arena.tournaments[tournament.id].status is TournamentStatus.IN_PROGRESS
    assert arena.events_of(CollaboratorEvent.BADGE_AWARDED) == []

    await override_match_result(last.id, ORGANIZER, MatchOverrideBody(home_score=2, away_score=2))

    completed = arena.tournaments[tournament.id]
    assert completed.status is TournamentStatus.COMPLETED
    assert completed.ended_at is not None
    badges = arena.events_of(CollaboratorEvent.BADGE_AWARDED)
    assert [(badge["user_id"], badge["ranking"]) for badge in badges] == [
        ("captain-1", 1),
        ("captain-3", 2),
        ("captain-4", 3),
    ]
