from typing import Any

from heliclockter import datetime_utc

from arena.database import database
from arena.models.db.match import Match, MatchInsertable, MatchStatus
from arena.models.db.shared import dump_json_column
from arena.utils.id_types import MatchId, TournamentId

_JSON_COLUMNS = (
    "home_report",
    "away_report",
    "home_secondary_report",
    "away_secondary_report",
    "home_stats",
    "away_stats",
    "replay_request",
)
# Set when the fixture is created and never rewritten.
_FIXED_COLUMNS = frozenset(
    ("tournament_id", "home_team_id", "away_team_id", "host_id", "round", "created")
)


def _match_values(match: MatchInsertable) -> dict[str, Any]:
    values = match.model_dump(exclude=set(_JSON_COLUMNS))
    values["status"] = match.status.value
    for column in _JSON_COLUMNS:
        values[column] = dump_json_column(getattr(match, column))
    return values


async def sql_get_match(match_id: MatchId) -> Match | None:
    query = """
        SELECT *
        FROM matches
        WHERE id = :match_id
        """
    result = await database.fetch_one(query=query, values={"match_id": match_id})
    return Match.model_validate(result) if result is not None else None


async def sql_get_match_for_update(match_id: MatchId) -> Match | None:
    """Read a match and hold its row lock until the surrounding transaction ends."""
    query = """
        SELECT *
        FROM matches
        WHERE id = :match_id
        FOR UPDATE
        """
    result = await database.fetch_one(query=query, values={"match_id": match_id})
    return Match.model_validate(result) if result is not None else None


async def sql_get_matches(
    tournament_id: TournamentId,
    *,
    statuses: list[MatchStatus] | None = None,
    rounds: list[str] | None = None,
) -> list[Match]:
    status_filter = "AND status::text = ANY(:statuses)" if statuses is not None else ""
    round_filter = "AND round = ANY(:rounds)" if rounds is not None else ""
    query = f"""
        SELECT *
        FROM matches
        WHERE tournament_id = :tournament_id
        {status_filter}
        {round_filter}
        ORDER BY match_day, id
        """
    values: dict[str, Any] = {"tournament_id": tournament_id}
    if statuses is not None:
        values["statuses"] = [match_status.value for match_status in statuses]
    if rounds is not None:
        values["rounds"] = rounds

    result = await database.fetch_all(query=query, values=values)
    return [Match.model_validate(x) for x in result]


async def sql_get_overdue_match_ids(
    day_start: datetime_utc, tournament_id: TournamentId | None = None
) -> list[MatchId]:
    """
    Matches whose match day ended before day_start and that still wait for a result. Disputed
    matches are only listed until the sweeper has had one go at them.
    """
    tournament_filter = "AND tournament_id = :tournament_id" if tournament_id is not None else ""
    query = f"""
        SELECT id
        FROM matches
        WHERE match_day < :day_start
          AND (
            status IN ('scheduled', 'awaiting_confirmation', 'needs_secondary_evidence')
            OR (status = 'disputed' AND auto_resolution_attempted IS FALSE)
          )
        {tournament_filter}
        ORDER BY match_day, id
        """
    values: dict[str, Any] = {"day_start": day_start}
    if tournament_id is not None:
        values["tournament_id"] = tournament_id

    result = await database.fetch_all(query=query, values=values)
    return [MatchId(row._mapping["id"]) for row in result]


async def sql_create_matches(matches: list[MatchInsertable]) -> None:
    if len(matches) < 1:
        return

    query = """
        INSERT INTO matches (
            tournament_id,
            home_team_id,
            away_team_id,
            host_id,
            round,
            match_day,
            status,
            is_replay,
            created
        )
        VALUES (
            :tournament_id,
            :home_team_id,
            :away_team_id,
            :host_id,
            :round,
            :match_day,
            CAST(:status AS match_status),
            :is_replay,
            :created
        )
        """
    await database.execute_many(
        query=query,
        values=[
            {
                "tournament_id": match.tournament_id,
                "home_team_id": match.home_team_id,
                "away_team_id": match.away_team_id,
                "host_id": match.host_id,
                "round": match.round,
                "match_day": match.match_day,
                "status": match.status.value,
                "is_replay": match.is_replay,
                "created": match.created,
            }
            for match in matches
        ],
    )


async def sql_update_match(match: Match) -> None:
    query = """
        UPDATE matches
        SET
            match_day = :match_day,
            status = CAST(:status AS match_status),
            home_score = :home_score,
            away_score = :away_score,
            pk_home_score = :pk_home_score,
            pk_away_score = :pk_away_score,
            home_report = :home_report,
            away_report = :away_report,
            home_secondary_report = :home_secondary_report,
            away_secondary_report = :away_secondary_report,
            home_stats = :home_stats,
            away_stats = :away_stats,
            home_stats_penalty = :home_stats_penalty,
            away_stats_penalty = :away_stats_penalty,
            resolution_notes = :resolution_notes,
            was_auto_forfeited = :was_auto_forfeited,
            is_replay = :is_replay,
            auto_resolution_attempted = :auto_resolution_attempted,
            replay_request = :replay_request,
            room_code = :room_code,
            room_code_set_at = :room_code_set_at,
            highlight_url = :highlight_url,
            approved_at = :approved_at
        WHERE id = :id
        """
    values = {
        column: value
        for column, value in _match_values(match).items()
        if column not in _FIXED_COLUMNS
    }
    await database.execute(query=query, values=values)
