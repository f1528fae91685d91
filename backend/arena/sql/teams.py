from arena.database import database
from arena.models.db.shared import dump_json_column
from arena.models.db.team import Team, TeamInsertable
from arena.utils.id_types import TeamId, TournamentId, UserId


async def sql_get_team(team_id: TeamId) -> Team | None:
    query = """
        SELECT *
        FROM teams
        WHERE id = :team_id
        """
    result = await database.fetch_one(query=query, values={"team_id": team_id})
    return Team.model_validate(result) if result is not None else None


async def sql_get_teams(tournament_id: TournamentId, *, approved_only: bool = False) -> list[Team]:
    approved_filter = "AND is_approved IS TRUE" if approved_only else ""
    query = f"""
        SELECT *
        FROM teams
        WHERE tournament_id = :tournament_id
        {approved_filter}
        ORDER BY id
        """
    result = await database.fetch_all(query=query, values={"tournament_id": tournament_id})
    return [Team.model_validate(x) for x in result]


async def sql_get_team_by_captain(tournament_id: TournamentId, captain_id: UserId) -> Team | None:
    query = """
        SELECT *
        FROM teams
        WHERE tournament_id = :tournament_id
          AND captain_id = :captain_id
        """
    result = await database.fetch_one(
        query=query, values={"tournament_id": tournament_id, "captain_id": str(captain_id)}
    )
    return Team.model_validate(result) if result is not None else None


async def sql_create_team(team: TeamInsertable) -> TeamId:
    query = """
        INSERT INTO teams (
            tournament_id, name, captain_id, players, is_approved, performance_points, created
        )
        VALUES (
            :tournament_id, :name, :captain_id, :players, :is_approved, :performance_points,
            :created
        )
        RETURNING id
        """
    new_id = await database.fetch_val(
        query=query,
        values={
            **team.model_dump(exclude={"players"}),
            "captain_id": str(team.captain_id),
            "players": dump_json_column(team.players),
        },
    )
    return TeamId(new_id)


async def sql_set_team_approval(team_id: TeamId, is_approved: bool) -> None:
    query = """
        UPDATE teams
        SET is_approved = :is_approved
        WHERE id = :team_id
        """
    await database.execute(query=query, values={"team_id": team_id, "is_approved": is_approved})


async def sql_add_team_performance_points(team_id: TeamId, delta: int) -> None:
    if delta == 0:
        return
    query = """
        UPDATE teams
        SET performance_points = performance_points + :delta
        WHERE id = :team_id
        """
    await database.execute(query=query, values={"team_id": team_id, "delta": delta})
