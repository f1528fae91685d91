import random
from collections.abc import Sequence

from fastapi import HTTPException
from starlette import status

from arena.logic.scheduling.rounds import get_knockout_round_name
from arena.models.db.match import Fixture, Match
from arena.models.db.tournament import Tournament
from arena.utils.id_types import TeamId


def get_knockout_bracket_size(team_count: int, max_teams: int) -> int:
    """Largest power of two that fits both the field and the configured bracket limit."""
    limit = min(team_count, max_teams)
    if limit < 2:
        return 0
    return 1 << (limit.bit_length() - 1)


def _seed_order(bracket_size: int) -> list[int]:
    if bracket_size == 1:
        return [1]

    previous = _seed_order(bracket_size // 2)
    return [
        seed
        for prev_seed in previous
        for seed in (prev_seed, bracket_size + 1 - prev_seed)
    ]


def _check_knockout_field(team_ids: Sequence[TeamId]) -> None:
    if len(team_ids) < 2 or len(team_ids) % 2 != 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot generate cup round: odd number of teams ({len(team_ids)})",
        )
    if len(set(team_ids)) != len(team_ids):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot generate cup round: a team appears more than once",
        )


def generate_knockout_round(
    team_ids: Sequence[TeamId], *, rng: random.Random | None = None
) -> list[Fixture]:
    """Unseeded draw: shuffle the remaining teams and pair them off in order."""
    _check_knockout_field(team_ids)

    drawn = list(team_ids)
    (rng or random.Random()).shuffle(drawn)
    round_name = get_knockout_round_name(len(drawn))
    return [
        Fixture(home_team_id=drawn[i], away_team_id=drawn[i + 1], round=round_name)
        for i in range(0, len(drawn), 2)
    ]


def advance_seeded_bracket(winners: Sequence[TeamId]) -> list[Fixture]:
    """Pair the winners of consecutive fixtures of a seeded round, keeping the bracket intact."""
    _check_knockout_field(winners)
    round_name = get_knockout_round_name(len(winners))
    return [
        Fixture(home_team_id=winners[i], away_team_id=winners[i + 1], round=round_name)
        for i in range(0, len(winners), 2)
    ]


def seed_knockout_bracket(ranked_team_ids: Sequence[TeamId]) -> list[Fixture]:
    """
    Seeded draw from a ranking: seed i hosts seed K + 1 - i. Fixtures are listed in bracket
    order, so advancing winners with advance_seeded_bracket keeps the top two seeds apart until
    the Final.
    """
    _check_knockout_field(ranked_team_ids)
    bracket_size = len(ranked_team_ids)
    if bracket_size & (bracket_size - 1) != 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"A seeded bracket needs a power of two teams, got {bracket_size}",
        )

    ordered_seeds = _seed_order(bracket_size)
    round_name = get_knockout_round_name(bracket_size)
    return [
        Fixture(
            home_team_id=ranked_team_ids[ordered_seeds[i] - 1],
            away_team_id=ranked_team_ids[ordered_seeds[i + 1] - 1],
            round=round_name,
        )
        for i in range(0, bracket_size, 2)
    ]


def determine_match_winner(match: Match, tournament: Tournament) -> TeamId:
    if match.home_score is None or match.away_score is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Match {match.id} in {match.round} has no final score",
        )

    if match.home_score != match.away_score:
        return match.home_team_id if match.home_score > match.away_score else match.away_team_id

    if (
        tournament.penalties
        and match.pk_home_score is not None
        and match.pk_away_score is not None
        and match.pk_home_score != match.pk_away_score
    ):
        return (
            match.home_team_id
            if match.pk_home_score > match.pk_away_score
            else match.away_team_id
        )

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=(
            f"Match {match.id} in {match.round} ended in a draw without penalties. "
            "Cup matches must have a winner."
        ),
    )
