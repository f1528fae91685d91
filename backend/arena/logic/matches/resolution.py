from typing import NamedTuple

from fastapi import HTTPException
from heliclockter import datetime_utc
from starlette import status

from arena.database import database
from arena.logic.adjudicator import AdjudicationError, request_verdict
from arena.logic.matches.lifecycle import (
    ADJUDICATION_FAILED_NOTE,
    OPEN_STATUSES,
    VerdictAction,
    approve,
    build_adjudication_request,
    captain_side,
    collect_evidence,
    decide_replay_request,
    forfeit_result,
    knockout_result_problem,
    open_replay_request,
    plan_verdict,
    record_primary_report,
    record_secondary_report,
    request_secondary_evidence,
    require_status,
    reset_for_replay,
    respond_to_replay_request,
    result_from_verdict,
    with_status,
    withdraw_primary_report,
)
from arena.logic.notifications import (
    award_tournament_completion,
    issue_reputation_warning,
    notify_match_resolved,
)
from arena.logic.ranking.statistics import (
    Direction,
    apply_captain_contribution,
    captain_contribution,
    team_performance_points,
)
from arena.logic.scheduling.rounds import FINAL
from arena.models.adjudication import AdjudicationVerdict
from arena.models.db.match import (
    Match,
    MatchOverrideBody,
    MatchReportBody,
    MatchResult,
    MatchStatus,
    SecondaryEvidenceBody,
    TeamSide,
)
from arena.models.db.standing import StandingRecord
from arena.models.db.team import Team
from arena.models.db.tournament import Tournament, TournamentFormat, TournamentStatus
from arena.sql.matches import (
    sql_get_match,
    sql_get_match_for_update,
    sql_get_matches,
    sql_update_match,
)
from arena.sql.player_stats import sql_get_player_stats_for_update, sql_save_player_stats
from arena.sql.standings import recalculate_tournament_standings
from arena.sql.teams import sql_add_team_performance_points, sql_get_team, sql_get_teams
from arena.sql.tournaments import (
    sql_get_tournament,
    sql_lock_tournament,
    sql_update_tournament_status,
)
from arena.utils.id_types import MatchId, UserId
from arena.utils.logging import logger


class MatchContext(NamedTuple):
    match: Match
    tournament: Tournament
    home_team: Team
    away_team: Team

    def team_for(self, side: TeamSide) -> Team:
        return self.home_team if side is TeamSide.HOME else self.away_team


class ResolutionOutcome(NamedTuple):
    match: Match
    final_standings: list[StandingRecord] | None = None
    flagged_user: UserId | None = None


def require_organizer(tournament: Tournament, user_id: UserId) -> None:
    if not tournament.is_organizer(user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the tournament organizer can perform this action",
        )


async def load_match_context(match_id: MatchId, *, for_update: bool) -> MatchContext:
    match = await (sql_get_match_for_update if for_update else sql_get_match)(match_id)
    if match is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Could not find match with id {match_id}",
        )

    tournament = await sql_get_tournament(match.tournament_id)
    home_team = await sql_get_team(match.home_team_id)
    away_team = await sql_get_team(match.away_team_id)
    if tournament is None or home_team is None or away_team is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Match {match_id} refers to a tournament or team that no longer exists",
        )
    return MatchContext(match, tournament, home_team, away_team)


async def _apply_statistics(context: MatchContext, match: Match, direction: Direction) -> None:
    # Lock captains' rows in a stable order so concurrent approvals cannot deadlock.
    sides = sorted(
        (TeamSide.HOME, TeamSide.AWAY), key=lambda side: str(context.team_for(side).captain_id)
    )
    for side in sides:
        team = context.team_for(side)
        stats = await sql_get_player_stats_for_update(team.captain_id)
        await sql_save_player_stats(
            apply_captain_contribution(
                stats, captain_contribution(match, side), context.tournament, direction
            )
        )
        await sql_add_team_performance_points(
            team.id, direction * team_performance_points(match, side)
        )


async def _complete_tournament_if_decided(
    tournament: Tournament, approved: Match, result: MatchResult, now: datetime_utc
) -> bool:
    if tournament.status is TournamentStatus.COMPLETED:
        return False

    if tournament.format is TournamentFormat.LEAGUE:
        unresolved = await sql_get_matches(tournament.id, statuses=list(OPEN_STATUSES))
        decided = len(unresolved) == 0
    else:
        decided = approved.round.strip().lower() == FINAL.lower()
        if decided and knockout_result_problem(approved, tournament, result) is not None:
            logger.warning(
                "Final %s of tournament %s was approved without a winner, "
                "leaving the tournament open for the organizer",
                approved.id,
                tournament.id,
            )
            return False

    if not decided:
        return False

    await sql_update_tournament_status(tournament.id, TournamentStatus.COMPLETED, ended_at=now)
    logger.info("Tournament %s completed after match %s", tournament.id, approved.id)
    return True


async def approve_in_transaction(
    context: MatchContext, result: MatchResult, now: datetime_utc
) -> ResolutionOutcome:
    """
    Freeze a result onto the match with all of its side effects. Must run inside a transaction
    that holds the match row lock. Approvals within a tournament are serialized on the
    tournament lock, so the standings rebuild and the completion check see every approval
    that committed before this one.
    """
    tournament = await _lock_tournament_of(context)
    approved = approve(context.match, result, now)
    await sql_update_match(approved)
    await _apply_statistics(context, approved, 1)
    standings = await recalculate_tournament_standings(tournament.id, manage_transaction=False)
    completed = await _complete_tournament_if_decided(tournament, approved, result, now)
    return ResolutionOutcome(approved, final_standings=standings if completed else None)


async def _lock_tournament_of(context: MatchContext) -> Tournament:
    await sql_lock_tournament(context.match.tournament_id)
    tournament = await sql_get_tournament(context.match.tournament_id)
    if tournament is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Could not find tournament with id {context.match.tournament_id}",
        )
    return tournament


async def revert_in_transaction(context: MatchContext) -> None:
    """Undo the side effects of an approved match using the values frozen on it."""
    await _apply_statistics(context, context.match, -1)


async def apply_verdict_in_transaction(
    context: MatchContext,
    verdict: AdjudicationVerdict | None,
    now: datetime_utc,
) -> ResolutionOutcome:
    current = context.match
    if verdict is None:
        updated = with_status(current, MatchStatus.DISPUTED, ADJUDICATION_FAILED_NOTE)
        await sql_update_match(updated)
        return ResolutionOutcome(updated)

    flagged_user = verdict.cheating_flag
    match plan_verdict(verdict):
        case VerdictAction.APPROVE:
            result = result_from_verdict(verdict)
            problem = knockout_result_problem(current, context.tournament, result)
            if problem is None:
                outcome = await approve_in_transaction(context, result, now)
                return outcome._replace(flagged_user=flagged_user)
            updated = with_status(current, MatchStatus.DISPUTED, f"AI Review Failed: {problem}")
        case VerdictAction.REQUEST_SECONDARY_EVIDENCE:
            updated = request_secondary_evidence(current, verdict.reasoning)
        case VerdictAction.SCHEDULE_REPLAY:
            updated = reset_for_replay(
                current,
                f"Rematch ordered: {verdict.reasoning or 'the evidence was inconclusive'}",
                now,
            )
        case _:
            updated = with_status(
                current,
                MatchStatus.DISPUTED,
                f"AI Review Failed: {verdict.reasoning or 'the reports could not be verified'}",
            )

    await sql_update_match(updated)
    return ResolutionOutcome(updated, flagged_user=flagged_user)


async def finish_resolution(context: MatchContext, outcome: ResolutionOutcome) -> None:
    """Side effects that run after commit. None of them can undo the resolution."""
    if outcome.flagged_user is not None:
        await issue_reputation_warning(outcome.flagged_user, outcome.match)

    await notify_match_resolved(outcome.match, context.home_team, context.away_team)

    if outcome.final_standings is not None:
        teams = await sql_get_teams(context.tournament.id)
        await award_tournament_completion(
            context.tournament, outcome.final_standings, {team.id: team for team in teams}
        )


def _evidence_unchanged(current: Match, snapshot: Match) -> bool:
    return (
        current.status == snapshot.status
        and current.home_report == snapshot.home_report
        and current.away_report == snapshot.away_report
        and current.home_secondary_report == snapshot.home_secondary_report
        and current.away_secondary_report == snapshot.away_secondary_report
    )


async def adjudicate_match(match_id: MatchId, *, secondary: bool) -> Match:
    """
    Run the adjudicator on a match's reports and apply its verdict.

    The adjudicator call happens outside any transaction. Its verdict is only applied if the
    match still holds the evidence that was sent, otherwise another request already moved the
    match on and the verdict is dropped.
    """
    snapshot_context = await load_match_context(match_id, for_update=False)
    snapshot = snapshot_context.match
    request = build_adjudication_request(
        snapshot,
        snapshot_context.home_team,
        snapshot_context.away_team,
        collect_evidence(snapshot, secondary=secondary),
    )

    verdict: AdjudicationVerdict | None
    try:
        verdict = await request_verdict(request)
    except AdjudicationError:
        verdict = None

    async with database.transaction():
        context = await load_match_context(match_id, for_update=True)
        if not _evidence_unchanged(context.match, snapshot):
            logger.info("Match %s changed during adjudication, dropping the verdict", match_id)
            return context.match
        outcome = await apply_verdict_in_transaction(context, verdict, datetime_utc.now())

    await finish_resolution(context, outcome)
    return outcome.match


async def submit_primary_report(match_id: MatchId, user_id: UserId, body: MatchReportBody) -> Match:
    async with database.transaction():
        context = await load_match_context(match_id, for_update=True)
        side = captain_side(context.match, context.home_team, context.away_team, user_id)
        updated = record_primary_report(
            context.match, side, context.team_for(side), body, user_id, datetime_utc.now()
        )
        await sql_update_match(updated)

    if not updated.has_both_primary_reports:
        return updated
    return await adjudicate_match(match_id, secondary=False)


async def submit_secondary_report(
    match_id: MatchId, user_id: UserId, body: SecondaryEvidenceBody
) -> Match:
    async with database.transaction():
        context = await load_match_context(match_id, for_update=True)
        side = captain_side(context.match, context.home_team, context.away_team, user_id)
        updated = record_secondary_report(
            context.match, side, context.team_for(side), body, user_id, datetime_utc.now()
        )
        await sql_update_match(updated)

    if not updated.has_both_secondary_reports:
        return updated
    return await adjudicate_match(match_id, secondary=True)


async def withdraw_report(match_id: MatchId, user_id: UserId) -> Match:
    async with database.transaction():
        context = await load_match_context(match_id, for_update=True)
        side = captain_side(context.match, context.home_team, context.away_team, user_id)
        updated = withdraw_primary_report(context.match, side)
        await sql_update_match(updated)
    return updated


async def forfeit_match(match_id: MatchId, user_id: UserId) -> Match:
    async with database.transaction():
        context = await load_match_context(match_id, for_update=True)
        side = captain_side(context.match, context.home_team, context.away_team, user_id)
        require_status(context.match, *OPEN_STATUSES, action="forfeit")
        outcome = await approve_in_transaction(
            context, forfeit_result(side, context.team_for(side)), datetime_utc.now()
        )

    logger.info("Match %s forfeited by %s", match_id, context.team_for(side).name)
    await finish_resolution(context, outcome)
    return outcome.match


async def override_match_result(
    match_id: MatchId, user_id: UserId, body: MatchOverrideBody
) -> Match:
    async with database.transaction():
        context = await load_match_context(match_id, for_update=True)
        require_organizer(context.tournament, user_id)
        require_status(context.match, *OPEN_STATUSES, action="set the result")

        result = MatchResult(
            home_score=body.home_score,
            away_score=body.away_score,
            pk_home_score=body.pk_home_score,
            pk_away_score=body.pk_away_score,
            resolution_notes=body.resolution_notes or "Result set by the organizer.",
        )
        problem = knockout_result_problem(context.match, context.tournament, result)
        if problem is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=problem)

        outcome = await approve_in_transaction(context, result, datetime_utc.now())

    await finish_resolution(context, outcome)
    return outcome.match


async def force_replay(match_id: MatchId, user_id: UserId, reason: str) -> Match:
    """
    Organizer-ordered replay. An approved match first has its statistics, performance points
    and standings contributions taken back out, then it returns to scheduled.
    """
    async with database.transaction():
        context = await load_match_context(match_id, for_update=True)
        require_organizer(context.tournament, user_id)
        tournament = await _lock_tournament_of(context)

        if context.match.status is MatchStatus.APPROVED:
            await revert_in_transaction(context)

        updated = reset_for_replay(
            context.match, f"Organizer forced replay: {reason}", datetime_utc.now()
        )
        await sql_update_match(updated)
        await recalculate_tournament_standings(tournament.id, manage_transaction=False)

    logger.info("Organizer forced a replay of match %s", match_id)
    await finish_resolution(context, ResolutionOutcome(updated))
    return updated


async def request_replay(match_id: MatchId, user_id: UserId, reason: str) -> Match:
    async with database.transaction():
        context = await load_match_context(match_id, for_update=True)
        captain_side(context.match, context.home_team, context.away_team, user_id)
        updated = open_replay_request(context.match, user_id, reason, datetime_utc.now())
        await sql_update_match(updated)
    return updated


async def respond_to_replay(match_id: MatchId, user_id: UserId, accept: bool) -> Match:
    async with database.transaction():
        context = await load_match_context(match_id, for_update=True)
        captain_side(context.match, context.home_team, context.away_team, user_id)
        updated = respond_to_replay_request(context.match, user_id, accept, datetime_utc.now())
        await sql_update_match(updated)
    return updated


async def decide_replay(match_id: MatchId, user_id: UserId, approve_replay: bool) -> Match:
    async with database.transaction():
        context = await load_match_context(match_id, for_update=True)
        require_organizer(context.tournament, user_id)
        updated = decide_replay_request(context.match, approve_replay, datetime_utc.now())
        await sql_update_match(updated)
    return updated


async def set_room_code(match_id: MatchId, user_id: UserId, room_code: str) -> Match:
    async with database.transaction():
        context = await load_match_context(match_id, for_update=True)
        host_side = context.match.side_of_team(context.match.host_id) or TeamSide.HOME
        if not context.team_for(host_side).is_captain(user_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the host captain can set the room code",
            )
        require_status(
            context.match,
            MatchStatus.SCHEDULED,
            MatchStatus.AWAITING_CONFIRMATION,
            action="set the room code",
        )
        updated = context.match.model_copy(
            update={"room_code": room_code, "room_code_set_at": datetime_utc.now()}
        )
        await sql_update_match(updated)
    return updated
