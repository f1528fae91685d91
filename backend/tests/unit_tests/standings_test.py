import csv
import io

from arena.logic.ranking.standings import (
    calculate_group_tables,
    calculate_standings,
    standings_sort_key,
    standings_to_csv,
)
from arena.models.db.match import Match, MatchStatus
from arena.models.db.standing import StandingRecord
from arena.utils.id_types import MatchId, TeamId, TournamentId
from tests.unit_tests.fakes import days_ago


def _match(
    match_id: int,
    home: int,
    away: int,
    home_score: int | None,
    away_score: int | None,
    *,
    round: str = "Round 1",
    status: MatchStatus = MatchStatus.APPROVED,
) -> Match:
    return Match(
        id=MatchId(match_id),
        tournament_id=TournamentId(1),
        home_team_id=TeamId(home),
        away_team_id=TeamId(away),
        host_id=TeamId(home),
        round=round,
        match_day=days_ago(1),
        status=status,
        home_score=home_score,
        away_score=away_score,
        created=days_ago(5),
    )


def test_standings_points_and_records() -> None:
    matches = [
        _match(1, 1, 2, 2, 1),
        _match(2, 3, 4, 0, 0),
        _match(3, 1, 3, 1, 1),
    ]

    standings = calculate_standings(matches, team_ids=[TeamId(t) for t in (1, 2, 3, 4, 5)])
    by_team = {record.team_id: record for record in standings}

    assert by_team[1].points == 4
    assert (by_team[1].wins, by_team[1].draws, by_team[1].losses) == (1, 1, 0)
    assert (by_team[1].goals_for, by_team[1].goals_against) == (3, 2)
    assert by_team[2].points == 0
    assert by_team[3].points == 2
    assert by_team[3].clean_sheets == 1
    assert by_team[4].clean_sheets == 1
    assert by_team[5].matches_played == 0
    assert [record.ranking for record in standings] == [1, 2, 3, 4, 5]
    assert standings[0].team_id == 1


def test_standings_ignore_unapproved_matches() -> None:
    matches = [
        _match(1, 1, 2, 5, 0, status=MatchStatus.DISPUTED),
        _match(2, 1, 2, None, None, status=MatchStatus.SCHEDULED),
    ]

    standings = calculate_standings(matches)

    assert {record.team_id for record in standings} == {1, 2}
    assert all(record.matches_played == 0 for record in standings)


def test_standings_tie_breaks() -> None:
    # 1 and 2 both have 3 points: 1 wins on goal difference.
    # 3 and 4 both have 3 points and equal goal difference: 3 wins on goals scored.
    # 5 and 6 are level on everything: the lower team id ranks first.
    matches = [
        _match(1, 1, 7, 4, 0),
        _match(2, 2, 8, 1, 0),
        _match(3, 3, 9, 3, 2),
        _match(4, 4, 10, 2, 1),
        _match(5, 6, 11, 1, 1),
        _match(6, 5, 12, 1, 1),
    ]

    ranked = [record.team_id for record in calculate_standings(matches)]

    assert ranked.index(TeamId(1)) < ranked.index(TeamId(2))
    assert ranked.index(TeamId(3)) < ranked.index(TeamId(4))
    assert ranked.index(TeamId(5)) < ranked.index(TeamId(6))


def test_standings_are_deterministic() -> None:
    matches = [_match(i, i % 5 + 1, (i + 2) % 5 + 1, i % 3, (i + 1) % 2) for i in range(1, 15)]

    first = calculate_standings(matches)
    second = calculate_standings(list(reversed(matches)))

    assert [r.model_dump() for r in first] == [r.model_dump() for r in second]
    assert first == sorted(first, key=standings_sort_key)


def test_group_tables() -> None:
    matches = [
        _match(1, 1, 2, 3, 0, round="Group A"),
        _match(2, 3, 4, 1, 2, round="Group B"),
        _match(3, 1, 3, 0, 0, round="Quarter-finals"),
        _match(4, 5, 6, None, None, round="Group A", status=MatchStatus.SCHEDULED),
    ]

    tables = calculate_group_tables(matches)

    assert list(tables) == ["Group A", "Group B"]
    assert [record.team_id for record in tables["Group A"]] == [1, 5, 6, 2]
    assert [record.team_id for record in tables["Group B"]] == [4, 3]
    assert tables["Group A"][0].matches_played == 1


def test_standings_to_csv() -> None:
    standings = [
        StandingRecord(
            team_id=TeamId(3),
            matches_played=2,
            wins=1,
            draws=1,
            goals_for=4,
            goals_against=1,
            points=4,
            clean_sheets=1,
            ranking=1,
        ),
        StandingRecord(team_id=TeamId(9), ranking=2),
    ]

    rows = list(csv.reader(io.StringIO(standings_to_csv(standings, {TeamId(3): "Alpha"}))))

    assert rows[0] == ["Rank", "Team", "MP", "W", "D", "L", "GF", "GA", "GD", "CS", "Pts"]
    assert rows[1] == ["1", "Alpha", "2", "1", "1", "0", "4", "1", "3", "1", "4"]
    assert rows[2][1] == "9"
