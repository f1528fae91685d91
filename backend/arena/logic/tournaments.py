import random

from fastapi import HTTPException
from heliclockter import datetime_utc
from starlette import status

from arena.config import config
from arena.database import database
from arena.logic.matches.resolution import require_organizer
from arena.logic.scheduling.builder import build_initial_fixtures, spread_over_window, to_matches
from arena.models.db.team import Team, TeamBody, TeamInsertable, TeamPlayer
from arena.models.db.tournament import (
    TOURNAMENT_STATUS_ORDER,
    Tournament,
    TournamentBody,
    TournamentStatus,
)
from arena.models.db.standing import StandingRecord
from arena.sql.matches import sql_create_matches
from arena.sql.standings import recalculate_tournament_standings
from arena.sql.teams import (
    sql_create_team,
    sql_get_team,
    sql_get_team_by_captain,
    sql_get_teams,
    sql_set_team_approval,
)
from arena.sql.tournaments import (
    sql_create_tournament,
    sql_delete_tournament,
    sql_get_tournament,
    sql_get_tournaments,
    sql_increment_team_count,
    sql_lock_tournament,
    sql_update_tournament_status,
)
from arena.utils.id_types import TeamId, TournamentId, UserId
from arena.utils.logging import logger


async def get_tournament_or_404(tournament_id: TournamentId) -> Tournament:
    tournament = await sql_get_tournament(tournament_id)
    if tournament is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Could not find tournament with id {tournament_id}",
        )
    return tournament


def check_status_transition(current: TournamentStatus, target: TournamentStatus) -> None:
    if TOURNAMENT_STATUS_ORDER.index(target) < TOURNAMENT_STATUS_ORDER.index(current):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Tournament status cannot move back from {current.value} to {target.value}",
        )


async def create_tournament(body: TournamentBody, user_id: UserId) -> Tournament:
    tournament_id = await sql_create_tournament(body, user_id)
    logger.info("Tournament %s (%s) created by %s", tournament_id, body.format.value, user_id)
    return await get_tournament_or_404(tournament_id)


async def register_team(tournament_id: TournamentId, user_id: UserId, body: TeamBody) -> Team:
    async with database.transaction():
        tournament = await get_tournament_or_404(tournament_id)
        if tournament.status is not TournamentStatus.OPEN_FOR_REGISTRATION:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Registration for this tournament is closed",
            )
        if datetime_utc.now() > tournament.registration_end:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The registration deadline has passed",
            )
        if await sql_get_team_by_captain(tournament_id, user_id) is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You are already captain of a team in this tournament",
            )
        if await sql_increment_team_count(tournament_id) is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Tournament is full ({tournament.max_teams} teams)",
            )

        listed_captain = next(
            (player for player in body.players if str(player.user_id) == str(user_id)), None
        )
        captain = TeamPlayer(
            user_id=user_id,
            username=listed_captain.username if listed_captain is not None else body.name,
            is_captain=True,
        )
        teammates = [
            player.model_copy(update={"is_captain": False})
            for player in body.players
            if str(player.user_id) != str(user_id)
        ]
        team_id = await sql_create_team(
            TeamInsertable(
                tournament_id=tournament_id,
                name=body.name,
                captain_id=user_id,
                players=[captain, *teammates],
                created=datetime_utc.now(),
            )
        )
        team = await sql_get_team(team_id)

    assert team is not None
    logger.info("Team %s registered for tournament %s", team.id, tournament_id)
    return team


async def set_team_approval(
    tournament_id: TournamentId, team_id: TeamId, user_id: UserId, is_approved: bool
) -> Team:
    tournament = await get_tournament_or_404(tournament_id)
    require_organizer(tournament, user_id)
    team = await sql_get_team(team_id)
    if team is None or team.tournament_id != tournament_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Could not find team with id {team_id}",
        )
    if tournament.status is not TournamentStatus.OPEN_FOR_REGISTRATION:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Teams can only be approved while registration is open",
        )

    await sql_set_team_approval(team_id, is_approved)
    return team.model_copy(update={"is_approved": is_approved})


async def _generate_first_stage(
    tournament: Tournament, now: datetime_utc, rng: random.Random | None
) -> int:
    teams = await sql_get_teams(tournament.id, approved_only=True)
    if len(teams) < config.minimum_approved_teams_to_start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"A minimum of {config.minimum_approved_teams_to_start} approved teams is "
                "required to start the tournament."
            ),
        )

    await sql_update_tournament_status(tournament.id, TournamentStatus.GENERATING_FIXTURES)
    fixtures = build_initial_fixtures(tournament, [team.id for team in teams], rng=rng)
    match_days = spread_over_window(len(fixtures), tournament.start_date, tournament.end_date)
    await sql_create_matches(to_matches(tournament.id, fixtures, match_days, now))
    await recalculate_tournament_standings(tournament.id, manage_transaction=False)

    next_status = (
        TournamentStatus.READY_TO_START
        if now < tournament.start_date
        else TournamentStatus.IN_PROGRESS
    )
    await sql_update_tournament_status(tournament.id, next_status)
    return len(fixtures)


async def start_tournament(
    tournament_id: TournamentId,
    user_id: UserId | None,
    *,
    rng: random.Random | None = None,
) -> Tournament:
    """
    Close registration and generate the first stage. A failure rolls the whole transaction
    back, which leaves the tournament open for registration. user_id None means the scheduler.
    """
    async with database.transaction():
        await sql_lock_tournament(tournament_id)
        tournament = await get_tournament_or_404(tournament_id)
        if user_id is not None:
            require_organizer(tournament, user_id)
        if tournament.status is not TournamentStatus.OPEN_FOR_REGISTRATION:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot start a tournament that is {tournament.status.value}",
            )

        fixture_count = await _generate_first_stage(tournament, datetime_utc.now(), rng)
        started = await get_tournament_or_404(tournament_id)

    logger.info(
        "Tournament %s started with %s fixtures, status %s",
        tournament_id,
        fixture_count,
        started.status.value,
    )
    return started


async def activate_due_tournaments(now: datetime_utc | None = None) -> list[TournamentId]:
    """
    Scheduled job: start tournaments whose registration closed and kick off tournaments whose
    start date arrived. A tournament that cannot start is logged and left for the organizer.
    """
    now = now or datetime_utc.now()
    changed: list[TournamentId] = []

    for tournament in await sql_get_tournaments(TournamentStatus.OPEN_FOR_REGISTRATION):
        if tournament.registration_end > now:
            continue
        try:
            await start_tournament(tournament.id, None)
        except HTTPException as exc:
            logger.warning("Could not start tournament %s: %s", tournament.id, exc.detail)
            continue
        changed.append(tournament.id)

    for tournament in await sql_get_tournaments(TournamentStatus.READY_TO_START):
        if tournament.start_date > now:
            continue
        check_status_transition(tournament.status, TournamentStatus.IN_PROGRESS)
        await sql_update_tournament_status(tournament.id, TournamentStatus.IN_PROGRESS)
        logger.info("Tournament %s is now in progress", tournament.id)
        changed.append(tournament.id)

    return changed


async def delete_tournament(tournament_id: TournamentId, user_id: UserId) -> None:
    tournament = await get_tournament_or_404(tournament_id)
    require_organizer(tournament, user_id)
    await sql_delete_tournament(tournament_id)
    logger.info("Tournament %s deleted by its organizer", tournament_id)


async def recalculate_standings(
    tournament_id: TournamentId, user_id: UserId
) -> list[StandingRecord]:
    tournament = await get_tournament_or_404(tournament_id)
    require_organizer(tournament, user_id)
    return await recalculate_tournament_standings(tournament_id)
