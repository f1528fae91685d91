from heliclockter import datetime_utc

from arena.database import database
from arena.models.db.tournament import (
    Tournament,
    TournamentBody,
    TournamentStatus,
)
from arena.utils.id_types import TournamentId, UserId

_TOURNAMENT_LOCK_SALT = 3_918_220_146_771_004_416


async def sql_get_tournament(tournament_id: TournamentId) -> Tournament | None:
    query = """
        SELECT *
        FROM tournaments
        WHERE id = :tournament_id
        """
    result = await database.fetch_one(query=query, values={"tournament_id": tournament_id})
    return Tournament.model_validate(result) if result is not None else None


async def sql_get_tournaments(status: TournamentStatus | None = None) -> list[Tournament]:
    query = """
        SELECT *
        FROM tournaments
        WHERE CAST(:status AS tournament_status) IS NULL
           OR status = CAST(:status AS tournament_status)
        ORDER BY id
        """
    result = await database.fetch_all(
        query=query, values={"status": status.value if status is not None else None}
    )
    return [Tournament.model_validate(x) for x in result]


async def sql_create_tournament(body: TournamentBody, organizer_id: UserId) -> TournamentId:
    query = """
        INSERT INTO tournaments (
            name,
            organizer_id,
            format,
            max_teams,
            team_count,
            home_and_away,
            penalties,
            extra_time,
            status,
            registration_end,
            start_date,
            end_date,
            created
        )
        VALUES (
            :name,
            :organizer_id,
            CAST(:format AS tournament_format),
            :max_teams,
            0,
            :home_and_away,
            :penalties,
            :extra_time,
            'open_for_registration',
            :registration_end,
            :start_date,
            :end_date,
            NOW()
        )
        RETURNING id
        """
    new_id = await database.fetch_val(
        query=query,
        values={
            **body.model_dump(),
            "format": body.format.value,
            "organizer_id": str(organizer_id),
        },
    )
    return TournamentId(new_id)


async def sql_update_tournament_status(
    tournament_id: TournamentId,
    new_status: TournamentStatus,
    *,
    ended_at: datetime_utc | None = None,
) -> None:
    query = """
        UPDATE tournaments
        SET
            status = CAST(:status AS tournament_status),
            ended_at = COALESCE(:ended_at, ended_at)
        WHERE id = :tournament_id
        """
    await database.execute(
        query=query,
        values={"tournament_id": tournament_id, "status": new_status.value, "ended_at": ended_at},
    )


async def sql_set_last_auto_resolved_at(
    tournament_id: TournamentId, resolved_at: datetime_utc
) -> None:
    query = """
        UPDATE tournaments
        SET last_auto_resolved_at = :resolved_at
        WHERE id = :tournament_id
        """
    await database.execute(
        query=query, values={"tournament_id": tournament_id, "resolved_at": resolved_at}
    )


async def sql_increment_team_count(tournament_id: TournamentId) -> int | None:
    """Claim a registration slot. Returns None when the tournament is already full."""
    query = """
        UPDATE tournaments
        SET team_count = team_count + 1
        WHERE id = :tournament_id
          AND team_count < max_teams
        RETURNING team_count
        """
    result = await database.fetch_val(query=query, values={"tournament_id": tournament_id})
    return int(result) if result is not None else None


async def sql_delete_tournament(tournament_id: TournamentId) -> None:
    async with database.transaction():
        for table in ("standings", "matches", "teams"):
            await database.execute(
                query=f"DELETE FROM {table} WHERE tournament_id = :tournament_id",
                values={"tournament_id": tournament_id},
            )
        await database.execute(
            query="DELETE FROM tournaments WHERE id = :tournament_id",
            values={"tournament_id": tournament_id},
        )


async def sql_lock_tournament(tournament_id: TournamentId) -> None:
    """Serialize writers of tournament-wide state until the transaction ends."""
    await database.execute(
        "SELECT pg_advisory_xact_lock(:lock_key)",
        values={"lock_key": _TOURNAMENT_LOCK_SALT + int(tournament_id)},
    )
