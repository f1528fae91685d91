from fastapi import HTTPException
from starlette import status

from arena.logic.tournaments import get_tournament_or_404
from arena.models.db.match import Match
from arena.models.db.tournament import Tournament
from arena.sql.matches import sql_get_match
from arena.utils.id_types import MatchId, TournamentId


async def tournament_dependency(tournament_id: TournamentId) -> Tournament:
    return await get_tournament_or_404(tournament_id)


async def match_dependency(tournament_id: TournamentId, match_id: MatchId) -> Match:
    match = await sql_get_match(match_id)
    if match is None or match.tournament_id != tournament_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Could not find match with id {match_id}",
        )
    return match
