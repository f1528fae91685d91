from fastapi import APIRouter

from arena.config import config
from arena.routes.models import PlayerStatsResponse
from arena.sql.player_stats import sql_get_player_stats
from arena.utils.id_types import UserId

router = APIRouter(prefix=config.api_prefix)


@router.get("/players/{user_id}/stats", response_model=PlayerStatsResponse)
async def get_player_stats(user_id: UserId) -> PlayerStatsResponse:
    return PlayerStatsResponse(data=await sql_get_player_stats(user_id))
