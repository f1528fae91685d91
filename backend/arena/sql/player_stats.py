from heliclockter import datetime_utc

from arena.database import database
from arena.models.db.player_stats import PlayerStats
from arena.models.db.shared import dump_json_column
from arena.utils.id_types import UserId


async def sql_get_player_stats(user_id: UserId) -> PlayerStats | None:
    query = """
        SELECT *
        FROM player_stats
        WHERE user_id = :user_id
        """
    result = await database.fetch_one(query=query, values={"user_id": str(user_id)})
    return PlayerStats.model_validate(result) if result is not None else None


async def sql_get_player_stats_for_update(user_id: UserId) -> PlayerStats:
    """
    Lock a captain's statistics row for the rest of the transaction, creating an empty one on
    first use so that concurrent approvals queue up on the same row.
    """
    await database.execute(
        """
        INSERT INTO player_stats (user_id, performance_history, updated)
        VALUES (:user_id, '[]', NOW())
        ON CONFLICT (user_id) DO NOTHING
        """,
        values={"user_id": str(user_id)},
    )
    result = await database.fetch_one(
        """
        SELECT *
        FROM player_stats
        WHERE user_id = :user_id
        FOR UPDATE
        """,
        values={"user_id": str(user_id)},
    )
    assert result is not None
    return PlayerStats.model_validate(result)


async def sql_save_player_stats(stats: PlayerStats) -> None:
    query = """
        UPDATE player_stats
        SET
            total_matches = :total_matches,
            wins = :wins,
            losses = :losses,
            draws = :draws,
            goals = :goals,
            conceded = :conceded,
            clean_sheets = :clean_sheets,
            avg_pass_accuracy = :avg_pass_accuracy,
            pass_accuracy_sum = :pass_accuracy_sum,
            matches_with_pass_stats = :matches_with_pass_stats,
            shots = :shots,
            shots_on_target = :shots_on_target,
            passes = :passes,
            tackles = :tackles,
            interceptions = :interceptions,
            saves = :saves,
            performance_history = :performance_history,
            updated = :updated
        WHERE user_id = :user_id
        """
    await database.execute(
        query=query,
        values={
            **stats.model_dump(exclude={"performance_history", "updated"}),
            "user_id": str(stats.user_id),
            "performance_history": dump_json_column(stats.performance_history),
            "updated": datetime_utc.now(),
        },
    )
