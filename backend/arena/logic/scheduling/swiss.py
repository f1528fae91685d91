import random
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence

from fastapi import HTTPException
from starlette import status

from arena.logic.ranking.standings import standings_sort_key
from arena.logic.scheduling.rounds import parse_swiss_round_number, swiss_round_label
from arena.models.db.match import Fixture, Match
from arena.models.db.standing import StandingRecord
from arena.utils.id_types import TeamId

MAX_SWISS_ROUNDS = 8
MIN_SWISS_TEAMS = 4

PairingHistory = Mapping[TeamId, set[TeamId]]


def get_max_swiss_rounds(team_count: int) -> int:
    return min(MAX_SWISS_ROUNDS, max(1, team_count - 1))


def build_pairing_history(matches: Iterable[Match]) -> dict[TeamId, set[TeamId]]:
    """Opponents each team has already faced in Swiss rounds."""
    history: dict[TeamId, set[TeamId]] = defaultdict(set)
    for match in matches:
        if parse_swiss_round_number(match.round) is None:
            continue
        history[match.home_team_id].add(match.away_team_id)
        history[match.away_team_id].add(match.home_team_id)
    return history


def _pair_without_rematches(
    ordered: tuple[TeamId, ...],
    history: PairingHistory,
    dead_ends: set[tuple[TeamId, ...]],
) -> list[tuple[TeamId, TeamId]] | None:
    if len(ordered) == 0:
        return []
    if ordered in dead_ends:
        return None

    top, rest = ordered[0], ordered[1:]
    played = history.get(top, set())
    for index, candidate in enumerate(rest):
        if candidate in played:
            continue
        remainder = _pair_without_rematches(rest[:index] + rest[index + 1 :], history, dead_ends)
        if remainder is not None:
            return [(top, candidate), *remainder]

    dead_ends.add(ordered)
    return None


def _pair_greedily(
    ordered: Sequence[TeamId], history: PairingHistory
) -> list[tuple[TeamId, TeamId]]:
    remaining = list(ordered)
    pairs: list[tuple[TeamId, TeamId]] = []
    while len(remaining) > 1:
        top = remaining.pop(0)
        played = history.get(top, set())
        opponent_index = next(
            (i for i, candidate in enumerate(remaining) if candidate not in played), 0
        )
        pairs.append((top, remaining.pop(opponent_index)))
    return pairs


def generate_swiss_round(
    team_ids: Sequence[TeamId],
    round_number: int,
    standings: Sequence[StandingRecord],
    history: PairingHistory,
    *,
    rng: random.Random | None = None,
) -> list[Fixture]:
    """
    Pair one Swiss round.

    The first round is drawn at random. Later rounds sort the field by the standings order and
    repeatedly match the top remaining team with the closest-ranked team it has not met yet.
    When no rematch-free completion of the round exists, teams fall back to their closest-ranked
    opponent even if they met before.
    """
    team_count = len(team_ids)
    if team_count < MIN_SWISS_TEAMS or team_count % 2 != 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Swiss rounds need an even number of at least {MIN_SWISS_TEAMS} teams, "
                f"got {team_count}"
            ),
        )
    if round_number < 1 or round_number > get_max_swiss_rounds(team_count):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Swiss round {round_number} is out of range, this field plays at most "
                f"{get_max_swiss_rounds(team_count)} rounds"
            ),
        )

    if round_number == 1:
        ordered = list(team_ids)
        (rng or random.Random()).shuffle(ordered)
        pairs = [(ordered[i], ordered[i + 1]) for i in range(0, team_count, 2)]
    else:
        records = {record.team_id: record for record in standings}
        ordered = sorted(
            team_ids,
            key=lambda team_id: standings_sort_key(
                records.get(team_id, StandingRecord(team_id=team_id))
            ),
        )
        pairs = _pair_without_rematches(tuple(ordered), history, set()) or _pair_greedily(
            ordered, history
        )

    label = swiss_round_label(round_number)
    fixtures: list[Fixture] = []
    for first, second in pairs:
        home, away = (first, second) if len(fixtures) % 2 == 0 else (second, first)
        fixtures.append(Fixture(home_team_id=home, away_team_id=away, round=label))
    return fixtures
