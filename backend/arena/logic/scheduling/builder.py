import random
from collections.abc import Sequence

from heliclockter import datetime_utc, timedelta

from arena.logic.scheduling.groups import create_groups, generate_group_fixtures
from arena.logic.scheduling.round_robin import generate_round_robin_fixtures
from arena.logic.scheduling.swiss import generate_swiss_round
from arena.models.db.match import Fixture, MatchInsertable
from arena.models.db.tournament import Tournament, TournamentFormat
from arena.utils.dates import days_between, start_of_day
from arena.utils.id_types import TeamId, TournamentId


def build_initial_fixtures(
    tournament: Tournament, team_ids: Sequence[TeamId], *, rng: random.Random | None = None
) -> list[Fixture]:
    """Fixtures of the first stage: the whole league, the group stage or Swiss round 1."""
    rng = rng or random.Random()
    match tournament.format:
        case TournamentFormat.LEAGUE:
            return generate_round_robin_fixtures(team_ids, home_and_away=tournament.home_and_away)
        case TournamentFormat.CUP | TournamentFormat.CHAMPIONS_LEAGUE:
            drawn = list(team_ids)
            rng.shuffle(drawn)
            home_and_away = tournament.format is TournamentFormat.CHAMPIONS_LEAGUE
            return [
                fixture
                for group in create_groups(drawn)
                for fixture in generate_group_fixtures(group, home_and_away=home_and_away)
            ]
        case TournamentFormat.SWISS:
            return generate_swiss_round(team_ids, 1, [], {}, rng=rng)
        case other:
            raise NotImplementedError(f"No fixture generation for format {other}")


def spread_over_window(
    fixture_count: int, start_date: datetime_utc, end_date: datetime_utc
) -> list[datetime_utc]:
    """Deal fixtures over the days of the scheduling window, wrapping around when it is short."""
    first_day = start_of_day(start_date)
    total_days = max(1, days_between(start_date, end_date) + 1)
    return [first_day + timedelta(days=index % total_days) for index in range(fixture_count)]


def days_after(
    last_match_day: datetime_utc, fixture_count: int, matches_per_day: int
) -> list[datetime_utc]:
    """Match days for a follow-up stage, starting the day after the previous stage ends."""
    first_day = start_of_day(last_match_day) + timedelta(days=1)
    per_day = max(1, matches_per_day)
    return [first_day + timedelta(days=index // per_day) for index in range(fixture_count)]


def to_matches(
    tournament_id: TournamentId,
    fixtures: Sequence[Fixture],
    match_days: Sequence[datetime_utc],
    created: datetime_utc,
) -> list[MatchInsertable]:
    return [
        MatchInsertable(
            tournament_id=tournament_id,
            home_team_id=fixture.home_team_id,
            away_team_id=fixture.away_team_id,
            host_id=fixture.home_team_id,
            round=fixture.round,
            match_day=match_day,
            created=created,
        )
        for fixture, match_day in zip(fixtures, match_days, strict=True)
    ]
