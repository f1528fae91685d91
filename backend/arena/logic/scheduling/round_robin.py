from collections.abc import Sequence

from fastapi import HTTPException
from starlette import status

from arena.logic.scheduling.rounds import league_round_label
from arena.models.db.match import Fixture
from arena.utils.id_types import TeamId


def get_number_of_rounds_to_create_round_robin(team_count: int) -> int:
    if team_count < 2:
        return 0
    return team_count - 1 if team_count % 2 == 0 else team_count


def generate_round_robin_fixtures(
    team_ids: Sequence[TeamId], *, home_and_away: bool = False
) -> list[Fixture]:
    """
    Circle method: the first team stays in place while the others rotate one seat per round.

    An odd field is padded with a bye that is dropped from the output. With home_and_away the
    second leg repeats every pairing with the sides swapped, numbered after the first leg.
    """
    if len(set(team_ids)) != len(team_ids):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot generate fixtures: a team appears more than once",
        )
    if len(team_ids) < 2:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot generate fixtures for fewer than 2 teams",
        )

    seats: list[TeamId | None] = list(team_ids)
    if len(seats) % 2 == 1:
        seats.append(None)

    rounds_count = get_number_of_rounds_to_create_round_robin(len(team_ids))
    pairings: list[tuple[int, TeamId, TeamId]] = []

    for round_number in range(1, rounds_count + 1):
        for seat in range(len(seats) // 2):
            home = seats[seat]
            away = seats[len(seats) - 1 - seat]
            if home is not None and away is not None:
                pairings.append((round_number, home, away))

        seats.insert(1, seats.pop())

    fixtures = [
        Fixture(home_team_id=home, away_team_id=away, round=league_round_label(round_number))
        for round_number, home, away in pairings
    ]
    if home_and_away:
        fixtures += [
            Fixture(
                home_team_id=away,
                away_team_id=home,
                round=league_round_label(round_number + rounds_count),
            )
            for round_number, home, away in pairings
        ]
    return fixtures
