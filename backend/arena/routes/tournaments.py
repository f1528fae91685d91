from fastapi import APIRouter, Depends
from fastapi.responses import Response

from arena.config import config
from arena.logic.overdue import run_overdue_resolution
from arena.logic.progression import progress_tournament
from arena.logic.ranking.standings import calculate_group_tables, standings_to_csv
from arena.logic.tournaments import (
    create_tournament,
    delete_tournament,
    recalculate_standings,
    start_tournament,
)
from arena.models.db.standing import StandingRecord
from arena.models.db.tournament import (
    StageProgressionBody,
    Tournament,
    TournamentBody,
    TournamentStatus,
)
from arena.routes.auth import user_authenticated
from arena.routes.models import (
    GroupTablesResponse,
    ProgressionResponse,
    RecalculatedStandingsResponse,
    StandingsResponse,
    SuccessResponse,
    SweepSummaryResponse,
    TournamentResponse,
    TournamentsResponse,
)
from arena.routes.util import tournament_dependency
from arena.sql.matches import sql_get_matches
from arena.sql.standings import sql_get_standings
from arena.sql.tournaments import sql_get_tournaments
from arena.utils.id_types import TournamentId, UserId

router = APIRouter(prefix=config.api_prefix)


@router.get("/tournaments", response_model=TournamentsResponse)
async def get_tournaments(
    status: TournamentStatus | None = None,
) -> TournamentsResponse:
    return TournamentsResponse(data=await sql_get_tournaments(status))


@router.post("/tournaments", response_model=TournamentResponse)
async def create_new_tournament(
    tournament_body: TournamentBody,
    user_id: UserId = Depends(user_authenticated),
) -> TournamentResponse:
    return TournamentResponse(data=await create_tournament(tournament_body, user_id))


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
async def get_tournament(
    tournament: Tournament = Depends(tournament_dependency),
) -> TournamentResponse:
    return TournamentResponse(data=tournament)


@router.delete("/tournaments/{tournament_id}", response_model=SuccessResponse)
async def delete_tournament_by_id(
    tournament_id: TournamentId,
    user_id: UserId = Depends(user_authenticated),
) -> SuccessResponse:
    await delete_tournament(tournament_id, user_id)
    return SuccessResponse()


@router.post("/tournaments/{tournament_id}/start", response_model=TournamentResponse)
async def start_tournament_by_id(
    tournament_id: TournamentId,
    user_id: UserId = Depends(user_authenticated),
) -> TournamentResponse:
    return TournamentResponse(data=await start_tournament(tournament_id, user_id))


@router.post("/tournaments/{tournament_id}/progress", response_model=ProgressionResponse)
async def progress_tournament_stage(
    tournament_id: TournamentId,
    body: StageProgressionBody,
    user_id: UserId = Depends(user_authenticated),
) -> ProgressionResponse:
    result = await progress_tournament(
        tournament_id, user_id, expected_stage=body.expected_stage
    )
    return ProgressionResponse(data=result)


@router.get("/tournaments/{tournament_id}/standings", response_model=StandingsResponse)
async def get_standings(
    tournament: Tournament = Depends(tournament_dependency),
) -> StandingsResponse:
    return StandingsResponse(data=await sql_get_standings(tournament.id))


@router.get("/tournaments/{tournament_id}/standings/export")
async def export_standings_csv(
    tournament: Tournament = Depends(tournament_dependency),
) -> Response:
    standings = await sql_get_standings(tournament.id)
    records = [StandingRecord.model_validate(row.model_dump()) for row in standings]
    content = standings_to_csv(records, {row.team_id: row.team_name for row in standings})
    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="standings-{int(tournament.id)}.csv"'
        },
    )


@router.post(
    "/tournaments/{tournament_id}/standings/recalculate",
    response_model=RecalculatedStandingsResponse,
)
async def recalculate_tournament_standings_by_id(
    tournament_id: TournamentId,
    user_id: UserId = Depends(user_authenticated),
) -> RecalculatedStandingsResponse:
    return RecalculatedStandingsResponse(data=await recalculate_standings(tournament_id, user_id))


@router.get("/tournaments/{tournament_id}/groups", response_model=GroupTablesResponse)
async def get_group_tables(
    tournament: Tournament = Depends(tournament_dependency),
) -> GroupTablesResponse:
    matches = await sql_get_matches(tournament.id)
    return GroupTablesResponse(data=calculate_group_tables(matches))


@router.post(
    "/tournaments/{tournament_id}/resolve_overdue", response_model=SweepSummaryResponse
)
async def resolve_overdue_matches(
    tournament_id: TournamentId,
    user_id: UserId = Depends(user_authenticated),
) -> SweepSummaryResponse:
    return SweepSummaryResponse(data=await run_overdue_resolution(tournament_id, user_id))
