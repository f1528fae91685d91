from fastapi import APIRouter, Depends

from arena.config import config
from arena.logic.tournaments import register_team, set_team_approval
from arena.models.db.team import TeamApprovalBody, TeamBody
from arena.models.db.tournament import Tournament
from arena.routes.auth import user_authenticated
from arena.routes.models import TeamResponse, TeamsResponse
from arena.routes.util import tournament_dependency
from arena.sql.teams import sql_get_teams
from arena.utils.id_types import TeamId, TournamentId, UserId

router = APIRouter(prefix=config.api_prefix)


@router.get("/tournaments/{tournament_id}/teams", response_model=TeamsResponse)
async def get_teams(
    approved_only: bool = False,
    tournament: Tournament = Depends(tournament_dependency),
) -> TeamsResponse:
    return TeamsResponse(data=await sql_get_teams(tournament.id, approved_only=approved_only))


@router.post("/tournaments/{tournament_id}/teams", response_model=TeamResponse)
async def create_team(
    team_body: TeamBody,
    tournament_id: TournamentId,
    user_id: UserId = Depends(user_authenticated),
) -> TeamResponse:
    return TeamResponse(data=await register_team(tournament_id, user_id, team_body))


@router.put("/tournaments/{tournament_id}/teams/{team_id}/approval", response_model=TeamResponse)
async def update_team_approval(
    tournament_id: TournamentId,
    team_id: TeamId,
    body: TeamApprovalBody,
    user_id: UserId = Depends(user_authenticated),
) -> TeamResponse:
    team = await set_team_approval(tournament_id, team_id, user_id, body.is_approved)
    return TeamResponse(data=team)
