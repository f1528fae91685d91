import csv
import io
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence

from arena.logic.scheduling.rounds import is_group_round
from arena.models.db.match import Match
from arena.models.db.standing import StandingRecord
from arena.utils.id_types import TeamId

POINTS_FOR_WIN = 3
POINTS_FOR_DRAW = 1

STANDINGS_CSV_HEADERS = ["Rank", "Team", "MP", "W", "D", "L", "GF", "GA", "GD", "CS", "Pts"]


def standings_sort_key(record: StandingRecord) -> tuple[int, int, int, int]:
    """
    The one ordering used for tournament tables, group tables and Swiss pairing.

    Points, then goal difference, then goals scored, all descending. Team id ascending is the
    final criterion, which makes the order total.
    """
    return (-record.points, -record.goal_difference, -record.goals_for, int(record.team_id))


def _apply_result(record: StandingRecord, goals_for: int, goals_against: int) -> None:
    record.matches_played += 1
    record.goals_for += goals_for
    record.goals_against += goals_against
    if goals_against == 0:
        record.clean_sheets += 1

    if goals_for > goals_against:
        record.wins += 1
        record.points += POINTS_FOR_WIN
    elif goals_for == goals_against:
        record.draws += 1
        record.points += POINTS_FOR_DRAW
    else:
        record.losses += 1


def calculate_standings(
    matches: Iterable[Match], team_ids: Iterable[TeamId] | None = None
) -> list[StandingRecord]:
    """
    Aggregate approved matches into a ranked table. Every team in team_ids or in any of the
    given matches is listed, including teams that have not completed a match yet.
    """
    records: dict[TeamId, StandingRecord] = {
        team_id: StandingRecord(team_id=team_id) for team_id in team_ids or []
    }

    for match in matches:
        home = records.setdefault(match.home_team_id, StandingRecord(team_id=match.home_team_id))
        away = records.setdefault(match.away_team_id, StandingRecord(team_id=match.away_team_id))
        if not match.is_scored:
            continue

        home_score = int(match.home_score)  # type: ignore[arg-type]
        away_score = int(match.away_score)  # type: ignore[arg-type]
        _apply_result(home, home_score, away_score)
        _apply_result(away, away_score, home_score)

    ranked = sorted(records.values(), key=standings_sort_key)
    return [record.model_copy(update={"ranking": rank}) for rank, record in enumerate(ranked, 1)]


def calculate_group_tables(matches: Iterable[Match]) -> dict[str, list[StandingRecord]]:
    group_matches: dict[str, list[Match]] = defaultdict(list)
    for match in matches:
        if is_group_round(match.round):
            group_matches[match.round.strip()].append(match)

    return {name: calculate_standings(group) for name, group in sorted(group_matches.items())}


def standings_to_csv(
    standings: Sequence[StandingRecord], team_names: Mapping[TeamId, str]
) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(STANDINGS_CSV_HEADERS)
    for record in standings:
        writer.writerow(
            [
                record.ranking,
                team_names.get(record.team_id, str(record.team_id)),
                record.matches_played,
                record.wins,
                record.draws,
                record.losses,
                record.goals_for,
                record.goals_against,
                record.goal_difference,
                record.clean_sheets,
                record.points,
            ]
        )
    return buffer.getvalue()
