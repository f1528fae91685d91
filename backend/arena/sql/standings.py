import time

from arena.config import config
from arena.database import database
from arena.logic.ranking.standings import calculate_standings
from arena.models.db.match import MatchStatus
from arena.models.db.standing import StandingRecord, StandingWithTeamName
from arena.sql.matches import sql_get_matches
from arena.sql.teams import sql_get_teams
from arena.sql.tournaments import sql_lock_tournament
from arena.utils.id_types import TournamentId
from arena.utils.logging import logger


async def sql_get_standings(tournament_id: TournamentId) -> list[StandingWithTeamName]:
    query = """
        SELECT s.*, t.name AS team_name
        FROM standings s
        JOIN teams t ON t.id = s.team_id
        WHERE s.tournament_id = :tournament_id
        ORDER BY s.ranking, s.team_id
        """
    result = await database.fetch_all(query=query, values={"tournament_id": tournament_id})
    return [StandingWithTeamName.model_validate(x) for x in result]


async def _replace_standings(tournament_id: TournamentId, records: list[StandingRecord]) -> None:
    await database.execute(
        "DELETE FROM standings WHERE tournament_id = :tournament_id",
        values={"tournament_id": tournament_id},
    )
    if len(records) < 1:
        return

    await database.execute_many(
        """
        INSERT INTO standings (
            tournament_id, team_id, matches_played, wins, draws, losses, goals_for,
            goals_against, goal_difference, points, clean_sheets, ranking
        )
        VALUES (
            :tournament_id, :team_id, :matches_played, :wins, :draws, :losses, :goals_for,
            :goals_against, :goal_difference, :points, :clean_sheets, :ranking
        )
        """,
        values=[
            {
                **record.model_dump(),
                "tournament_id": tournament_id,
                "goal_difference": record.goal_difference,
            }
            for record in records
        ],
    )


async def recalculate_tournament_standings(
    tournament_id: TournamentId, *, manage_transaction: bool = True
) -> list[StandingRecord]:
    """Rebuild the whole table from approved matches. Never updates standings incrementally."""
    started_at = time.monotonic()

    async def recalculate_inside_transaction() -> list[StandingRecord]:
        teams = await sql_get_teams(tournament_id, approved_only=True)
        approved = await sql_get_matches(tournament_id, statuses=[MatchStatus.APPROVED])
        records = calculate_standings(approved, team_ids=[team.id for team in teams])
        await _replace_standings(tournament_id, records)
        return records

    if manage_transaction:
        async with database.transaction():
            await sql_lock_tournament(tournament_id)
            records = await recalculate_inside_transaction()
    else:
        records = await recalculate_inside_transaction()

    duration_ms = int((time.monotonic() - started_at) * 1000)
    if duration_ms >= config.standings_recalc_warn_ms:
        logger.warning(
            "Standings recalculation was slow: tournament_id=%s duration_ms=%s",
            int(tournament_id),
            duration_ms,
        )
    return records
