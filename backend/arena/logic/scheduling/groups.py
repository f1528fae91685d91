import string
from collections.abc import Mapping, Sequence

from fastapi import HTTPException
from pydantic import BaseModel
from starlette import status

from arena.logic.scheduling.rounds import get_knockout_round_name
from arena.models.db.match import Fixture
from arena.models.db.standing import StandingRecord
from arena.utils.id_types import TeamId

DEFAULT_GROUP_SIZE = 4
MIN_TEAMS_FOR_GROUP_STAGE = 8


class Group(BaseModel):
    name: str
    team_ids: list[TeamId]


def group_name(index: int) -> str:
    return f"Group {string.ascii_uppercase[index]}"


def _validate_group_split(team_count: int, group_size: int) -> None:
    if team_count < MIN_TEAMS_FOR_GROUP_STAGE:
        detail = f"A group stage needs at least {MIN_TEAMS_FOR_GROUP_STAGE} teams, got {team_count}"
    elif group_size < 3:
        detail = "Groups must contain at least 3 teams"
    elif team_count % group_size != 0:
        detail = f"Cannot split {team_count} teams into groups of {group_size}"
    elif group_size == 4 and team_count % 8 != 0:
        detail = f"Groups of 4 need a multiple of 8 teams, got {team_count}"
    elif team_count // group_size > len(string.ascii_uppercase):
        detail = f"Cannot create more than {len(string.ascii_uppercase)} groups"
    else:
        return

    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def create_groups(team_ids: Sequence[TeamId], group_size: int = DEFAULT_GROUP_SIZE) -> list[Group]:
    """
    Deal teams into groups in boustrophedon order.

    The input order is treated as seeding: the first row of seeds goes left to right, the next
    row right to left, and so on, so every group receives one team from each seeding pot.
    """
    _validate_group_split(len(team_ids), group_size)

    group_count = len(team_ids) // group_size
    members: list[list[TeamId]] = [[] for _ in range(group_count)]
    for index, team_id in enumerate(team_ids):
        row, position = divmod(index, group_count)
        group_index = position if row % 2 == 0 else group_count - 1 - position
        members[group_index].append(team_id)

    return [Group(name=group_name(i), team_ids=team_ids_) for i, team_ids_ in enumerate(members)]


def generate_group_fixtures(group: Group, *, home_and_away: bool = False) -> list[Fixture]:
    fixtures: list[Fixture] = []
    teams = group.team_ids
    for i in range(len(teams)):
        for j in range(i + 1, len(teams)):
            # Alternate hosting so nobody is at home for the whole group.
            home, away = (teams[i], teams[j]) if (i + j) % 2 == 0 else (teams[j], teams[i])
            fixtures.append(Fixture(home_team_id=home, away_team_id=away, round=group.name))

    if home_and_away:
        fixtures += [
            Fixture(home_team_id=f.away_team_id, away_team_id=f.home_team_id, round=f.round)
            for f in list(fixtures)
        ]
    return fixtures


def seed_knockout_from_groups(
    group_tables: Mapping[str, Sequence[StandingRecord]],
) -> list[Fixture]:
    """
    Cross the top two of neighbouring groups: winner of one group hosts the runner-up of the
    next one and vice versa. Groups are paired in name order (A with B, C with D, ...).
    """
    group_names = sorted(group_tables.keys())
    if len(group_names) < 2 or len(group_names) % 2 != 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Knockout seeding needs an even number of groups, got {len(group_names)}",
        )

    for name in group_names:
        if len(group_tables[name]) < 2:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{name} does not have two ranked teams to advance",
            )

    round_name = get_knockout_round_name(len(group_names) * 2)
    fixtures: list[Fixture] = []
    for first, second in zip(group_names[0::2], group_names[1::2]):
        first_table = group_tables[first]
        second_table = group_tables[second]
        fixtures.append(
            Fixture(
                home_team_id=first_table[0].team_id,
                away_team_id=second_table[1].team_id,
                round=round_name,
            )
        )
        fixtures.append(
            Fixture(
                home_team_id=second_table[0].team_id,
                away_team_id=first_table[1].team_id,
                round=round_name,
            )
        )
    return fixtures
