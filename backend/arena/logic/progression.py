import random

from fastapi import HTTPException
from heliclockter import datetime_utc
from pydantic import BaseModel
from starlette import status

from arena.config import config
from arena.database import database
from arena.logic.matches.resolution import require_organizer
from arena.logic.ranking.standings import calculate_group_tables, calculate_standings
from arena.logic.scheduling.builder import days_after, to_matches
from arena.logic.scheduling.elimination import (
    advance_seeded_bracket,
    determine_match_winner,
    generate_knockout_round,
    get_knockout_bracket_size,
    seed_knockout_bracket,
)
from arena.logic.scheduling.groups import seed_knockout_from_groups
from arena.logic.scheduling.rounds import (
    FINAL,
    RoundKind,
    classify_round,
    get_round_rank,
    parse_swiss_round_number,
)
from arena.logic.scheduling.swiss import (
    build_pairing_history,
    generate_swiss_round,
    get_max_swiss_rounds,
)
from arena.models.db.match import Fixture, Match, MatchStatus
from arena.models.db.tournament import Tournament, TournamentFormat, TournamentStatus
from arena.sql.matches import sql_create_matches, sql_get_matches
from arena.sql.tournaments import (
    sql_get_tournament,
    sql_lock_tournament,
    sql_update_tournament_status,
)
from arena.utils.id_types import TeamId, TournamentId, UserId
from arena.utils.logging import logger

GROUP_STAGE = "Group stage"


class ProgressionResult(BaseModel):
    stage: str
    matches_created: int
    already_progressed: bool = False


def stage_name(round_label: str) -> str:
    """Group rounds form a single stage, every other round is a stage of its own."""
    return GROUP_STAGE if classify_round(round_label) is RoundKind.GROUP else round_label.strip()


def current_stage_matches(matches: list[Match]) -> tuple[str, list[Match]]:
    latest = max(matches, key=lambda match: (get_round_rank(match.round), int(match.id)))
    current = stage_name(latest.round)
    return current, [match for match in matches if stage_name(match.round) == current]


def _swiss_field(matches: list[Match]) -> list[TeamId]:
    first_round = [match for match in matches if parse_swiss_round_number(match.round) == 1]
    return sorted(
        {team_id for match in first_round for team_id in (match.home_team_id, match.away_team_id)}
    )


def next_stage_fixtures(
    tournament: Tournament,
    matches: list[Match],
    current: str,
    stage_matches: list[Match],
    *,
    rng: random.Random | None = None,
) -> list[Fixture]:
    match classify_round(stage_matches[0].round):
        case RoundKind.GROUP:
            return seed_knockout_from_groups(calculate_group_tables(matches))

        case RoundKind.SWISS:
            swiss_matches = [m for m in matches if parse_swiss_round_number(m.round) is not None]
            field = _swiss_field(matches)
            standings = calculate_standings(swiss_matches, team_ids=field)
            round_number = parse_swiss_round_number(current) or 0
            if round_number < get_max_swiss_rounds(len(field)):
                return generate_swiss_round(
                    field,
                    round_number + 1,
                    standings,
                    build_pairing_history(swiss_matches),
                    rng=rng,
                )

            bracket_size = get_knockout_bracket_size(len(field), config.swiss_max_knockout_teams)
            return seed_knockout_bracket([record.team_id for record in standings[:bracket_size]])

        case RoundKind.KNOCKOUT:
            if current.lower() == FINAL.lower():
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="The Final has been played, there is no further stage",
                )
            ordered = sorted(stage_matches, key=lambda match: int(match.id))
            winners = [determine_match_winner(match, tournament) for match in ordered]
            if tournament.format is TournamentFormat.SWISS:
                return advance_seeded_bracket(winners)
            return generate_knockout_round(winners, rng=rng)

        case _:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot progress from round {current}",
            )


async def progress_tournament(
    tournament_id: TournamentId,
    user_id: UserId,
    *,
    expected_stage: str | None = None,
    rng: random.Random | None = None,
) -> ProgressionResult:
    """
    Generate the next stage once the current one is fully approved.

    Callers that pass the stage they believe is current get a no-op when somebody else already
    progressed the tournament. Without it, a second call is rejected because the freshly
    generated stage is not approved yet, so fixtures are never generated twice.
    """
    async with database.transaction():
        await sql_lock_tournament(tournament_id)
        tournament = await sql_get_tournament(tournament_id)
        if tournament is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Could not find tournament with id {tournament_id}",
            )
        require_organizer(tournament, user_id)

        if tournament.format is TournamentFormat.LEAGUE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="League tournaments have a single stage and complete automatically",
            )
        if tournament.status not in (TournamentStatus.READY_TO_START, TournamentStatus.IN_PROGRESS):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot progress a tournament that is {tournament.status.value}",
            )

        matches = await sql_get_matches(tournament_id)
        if len(matches) < 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The tournament has no fixtures yet",
            )

        current, stage_matches = current_stage_matches(matches)
        if expected_stage is not None and expected_stage.strip().lower() != current.lower():
            logger.info(
                "Tournament %s already progressed past %s, now at %s",
                tournament_id,
                expected_stage,
                current,
            )
            return ProgressionResult(stage=current, matches_created=0, already_progressed=True)

        unapproved = [m for m in stage_matches if m.status is not MatchStatus.APPROVED]
        if len(unapproved) > 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"Cannot progress: {len(unapproved)} match(es) in {current} "
                    "are still not approved."
                ),
            )

        fixtures = next_stage_fixtures(tournament, matches, current, stage_matches, rng=rng)
        match_days = days_after(
            max(match.match_day for match in matches),
            len(fixtures),
            config.matches_per_day_after_progression,
        )
        now = datetime_utc.now()
        await sql_create_matches(to_matches(tournament.id, fixtures, match_days, now))
        if tournament.status is TournamentStatus.READY_TO_START:
            await sql_update_tournament_status(tournament.id, TournamentStatus.IN_PROGRESS)

    next_stage = stage_name(fixtures[0].round)
    logger.info(
        "Tournament %s progressed from %s to %s with %s matches",
        tournament_id,
        current,
        next_stage,
        len(fixtures),
    )
    return ProgressionResult(stage=next_stage, matches_created=len(fixtures))
