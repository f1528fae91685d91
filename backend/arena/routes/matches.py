from fastapi import APIRouter, Depends, Query

from arena.config import config
from arena.logic.matches.resolution import (
    decide_replay,
    force_replay,
    forfeit_match,
    override_match_result,
    request_replay,
    respond_to_replay,
    set_room_code,
    submit_primary_report,
    submit_secondary_report,
    withdraw_report,
)
from arena.models.db.match import (
    ForceReplayBody,
    Match,
    MatchOverrideBody,
    MatchReportBody,
    MatchStatus,
    ReplayDecisionBody,
    ReplayRequestBody,
    RoomCodeBody,
    SecondaryEvidenceBody,
)
from arena.models.db.tournament import Tournament
from arena.routes.auth import user_authenticated
from arena.routes.models import MatchesResponse, SingleMatchResponse
from arena.routes.util import match_dependency, tournament_dependency
from arena.sql.matches import sql_get_matches
from arena.utils.id_types import UserId

router = APIRouter(prefix=config.api_prefix)


@router.get("/tournaments/{tournament_id}/matches", response_model=MatchesResponse)
async def get_matches(
    status: list[MatchStatus] | None = Query(default=None),
    rounds: list[str] | None = Query(default=None, alias="round"),
    tournament: Tournament = Depends(tournament_dependency),
) -> MatchesResponse:
    return MatchesResponse(
        data=await sql_get_matches(tournament.id, statuses=status, rounds=rounds)
    )


@router.get("/tournaments/{tournament_id}/matches/{match_id}", response_model=SingleMatchResponse)
async def get_match(match: Match = Depends(match_dependency)) -> SingleMatchResponse:
    return SingleMatchResponse(data=match)


@router.post(
    "/tournaments/{tournament_id}/matches/{match_id}/report", response_model=SingleMatchResponse
)
async def report_match_result(
    body: MatchReportBody,
    match: Match = Depends(match_dependency),
    user_id: UserId = Depends(user_authenticated),
) -> SingleMatchResponse:
    return SingleMatchResponse(data=await submit_primary_report(match.id, user_id, body))


@router.delete(
    "/tournaments/{tournament_id}/matches/{match_id}/report", response_model=SingleMatchResponse
)
async def withdraw_match_report(
    match: Match = Depends(match_dependency),
    user_id: UserId = Depends(user_authenticated),
) -> SingleMatchResponse:
    return SingleMatchResponse(data=await withdraw_report(match.id, user_id))


@router.post(
    "/tournaments/{tournament_id}/matches/{match_id}/secondary_evidence",
    response_model=SingleMatchResponse,
)
async def report_secondary_evidence(
    body: SecondaryEvidenceBody,
    match: Match = Depends(match_dependency),
    user_id: UserId = Depends(user_authenticated),
) -> SingleMatchResponse:
    return SingleMatchResponse(data=await submit_secondary_report(match.id, user_id, body))


@router.post(
    "/tournaments/{tournament_id}/matches/{match_id}/forfeit", response_model=SingleMatchResponse
)
async def forfeit(
    match: Match = Depends(match_dependency),
    user_id: UserId = Depends(user_authenticated),
) -> SingleMatchResponse:
    return SingleMatchResponse(data=await forfeit_match(match.id, user_id))


@router.put(
    "/tournaments/{tournament_id}/matches/{match_id}/result", response_model=SingleMatchResponse
)
async def override_result(
    body: MatchOverrideBody,
    match: Match = Depends(match_dependency),
    user_id: UserId = Depends(user_authenticated),
) -> SingleMatchResponse:
    return SingleMatchResponse(data=await override_match_result(match.id, user_id, body))


@router.post(
    "/tournaments/{tournament_id}/matches/{match_id}/force_replay",
    response_model=SingleMatchResponse,
)
async def force_match_replay(
    body: ForceReplayBody,
    match: Match = Depends(match_dependency),
    user_id: UserId = Depends(user_authenticated),
) -> SingleMatchResponse:
    return SingleMatchResponse(data=await force_replay(match.id, user_id, body.reason))


@router.post(
    "/tournaments/{tournament_id}/matches/{match_id}/replay_request",
    response_model=SingleMatchResponse,
)
async def create_replay_request(
    body: ReplayRequestBody,
    match: Match = Depends(match_dependency),
    user_id: UserId = Depends(user_authenticated),
) -> SingleMatchResponse:
    return SingleMatchResponse(data=await request_replay(match.id, user_id, body.reason))


@router.post(
    "/tournaments/{tournament_id}/matches/{match_id}/replay_request/response",
    response_model=SingleMatchResponse,
)
async def answer_replay_request(
    body: ReplayDecisionBody,
    match: Match = Depends(match_dependency),
    user_id: UserId = Depends(user_authenticated),
) -> SingleMatchResponse:
    return SingleMatchResponse(data=await respond_to_replay(match.id, user_id, body.approve))


@router.post(
    "/tournaments/{tournament_id}/matches/{match_id}/replay_request/decision",
    response_model=SingleMatchResponse,
)
async def decide_replay_request(
    body: ReplayDecisionBody,
    match: Match = Depends(match_dependency),
    user_id: UserId = Depends(user_authenticated),
) -> SingleMatchResponse:
    return SingleMatchResponse(data=await decide_replay(match.id, user_id, body.approve))


@router.put(
    "/tournaments/{tournament_id}/matches/{match_id}/room_code",
    response_model=SingleMatchResponse,
)
async def update_room_code(
    body: RoomCodeBody,
    match: Match = Depends(match_dependency),
    user_id: UserId = Depends(user_authenticated),
) -> SingleMatchResponse:
    return SingleMatchResponse(data=await set_room_code(match.id, user_id, body.room_code))
