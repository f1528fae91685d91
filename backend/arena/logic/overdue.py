"""
Resolution of matches whose match day has passed without an approved result.

The sweeper is re-entrant: every match is re-read under its row lock right before it is changed,
and a match that no longer qualifies is skipped.
"""

from enum import auto

from fastapi import HTTPException
from heliclockter import datetime_utc, timedelta
from pydantic import BaseModel
from starlette import status

from arena.config import config
from arena.database import database
from arena.logic.adjudicator import AdjudicationError, request_verdict
from arena.logic.matches.lifecycle import (
    AUTOMATED_RESOLUTION_FAILED_NOTE,
    OPEN_STATUSES,
    VerdictAction,
    build_adjudication_request,
    collect_evidence,
    default_win_result,
    no_show_result,
    plan_verdict,
    with_status,
)
from arena.logic.matches.resolution import (
    MatchContext,
    ResolutionOutcome,
    apply_verdict_in_transaction,
    approve_in_transaction,
    finish_resolution,
    load_match_context,
    require_organizer,
)
from arena.logic.scheduling.rounds import is_knockout_round
from arena.models.adjudication import AdjudicationVerdict
from arena.models.db.match import EvidenceItem, Match, MatchStatus, TeamSide
from arena.models.db.tournament import Tournament, TournamentStatus
from arena.sql.matches import sql_get_overdue_match_ids, sql_update_match
from arena.sql.tournaments import (
    sql_get_tournament,
    sql_lock_tournament,
    sql_set_last_auto_resolved_at,
)
from arena.utils.dates import start_of_day
from arena.utils.id_types import MatchId, TournamentId, UserId
from arena.utils.logging import logger
from arena.utils.types import EnumAutoStr


class OverdueAction(EnumAutoStr):
    DOUBLE_FORFEIT = auto()
    NO_SHOW_DRAW = auto()
    DEFAULT_WIN = auto()
    ADJUDICATE = auto()
    SKIP = auto()


class SweepSummary(BaseModel):
    checked: int = 0
    double_forfeits: int = 0
    no_show_draws: int = 0
    default_wins: int = 0
    adjudicated: int = 0
    failed: int = 0
    skipped: int = 0

    def count(self, action: OverdueAction) -> None:
        match action:
            case OverdueAction.DOUBLE_FORFEIT:
                self.double_forfeits += 1
            case OverdueAction.NO_SHOW_DRAW:
                self.no_show_draws += 1
            case OverdueAction.DEFAULT_WIN:
                self.default_wins += 1
            case OverdueAction.ADJUDICATE:
                self.adjudicated += 1
            case OverdueAction.SKIP:
                self.skipped += 1


class AutomatedResolutionFailed(Exception):
    pass


def is_overdue(match: Match, now: datetime_utc) -> bool:
    return match.status in OPEN_STATUSES and match.match_day < start_of_day(now)


def classify_overdue(match: Match, tournament: Tournament, now: datetime_utc) -> OverdueAction:
    if not is_overdue(match, now):
        return OverdueAction.SKIP

    if match.is_replay and tournament.format.has_knockout_stage and is_knockout_round(match.round):
        return OverdueAction.DOUBLE_FORFEIT

    match match.status:
        case MatchStatus.SCHEDULED:
            return OverdueAction.NO_SHOW_DRAW
        case MatchStatus.AWAITING_CONFIRMATION if reporting_side(match) is not None:
            return OverdueAction.DEFAULT_WIN
        case MatchStatus.AWAITING_CONFIRMATION if match.has_both_primary_reports:
            return OverdueAction.ADJUDICATE
        case MatchStatus.NEEDS_SECONDARY_EVIDENCE:
            return OverdueAction.ADJUDICATE
        case MatchStatus.DISPUTED if not match.auto_resolution_attempted:
            return OverdueAction.ADJUDICATE
        case _:
            return OverdueAction.SKIP


def reporting_side(match: Match) -> TeamSide | None:
    """The only side with a primary report, None when both or neither reported."""
    reported = [side for side in (TeamSide.HOME, TeamSide.AWAY) if match.report_for(side)]
    return reported[0] if len(reported) == 1 else None


def all_evidence(match: Match) -> list[EvidenceItem]:
    return collect_evidence(match, secondary=False) + collect_evidence(match, secondary=True)


async def _adjudicate_snapshot(
    context: MatchContext, evidence: list[EvidenceItem]
) -> AdjudicationVerdict:
    request = build_adjudication_request(
        context.match, context.home_team, context.away_team, evidence
    )
    try:
        return await request_verdict(request)
    except AdjudicationError as exc:
        raise AutomatedResolutionFailed(str(exc)) from exc


async def _apply_overdue_action(
    context: MatchContext,
    action: OverdueAction,
    verdict: AdjudicationVerdict | None,
    now: datetime_utc,
) -> ResolutionOutcome:
    match action:
        case OverdueAction.DOUBLE_FORFEIT:
            return await approve_in_transaction(context, no_show_result(replay=True), now)

        case OverdueAction.NO_SHOW_DRAW:
            return await approve_in_transaction(context, no_show_result(replay=False), now)

        case OverdueAction.DEFAULT_WIN:
            side = reporting_side(context.match)
            assert side is not None and verdict is not None
            return await approve_in_transaction(context, default_win_result(side, verdict), now)

        case OverdueAction.ADJUDICATE:
            assert verdict is not None
            # Asking for more evidence again would keep the match open forever.
            if plan_verdict(verdict) is VerdictAction.REQUEST_SECONDARY_EVIDENCE:
                raise AutomatedResolutionFailed("adjudicator asked for more evidence again")
            attempted = context._replace(
                match=context.match.model_copy(update={"auto_resolution_attempted": True})
            )
            return await apply_verdict_in_transaction(attempted, verdict, now)

        case _:
            raise ValueError(f"Nothing to apply for {action}")


async def _mark_resolution_failed(match_id: MatchId, reason: str) -> None:
    logger.warning("Automated resolution of match %s failed: %s", match_id, reason)
    async with database.transaction():
        context = await load_match_context(match_id, for_update=True)
        if context.match.status is MatchStatus.APPROVED:
            return
        failed = with_status(
            context.match, MatchStatus.DISPUTED, AUTOMATED_RESOLUTION_FAILED_NOTE
        ).model_copy(update={"auto_resolution_attempted": True})
        await sql_update_match(failed)


async def resolve_overdue_match(match_id: MatchId, now: datetime_utc) -> OverdueAction:
    snapshot = await load_match_context(match_id, for_update=False)
    action = classify_overdue(snapshot.match, snapshot.tournament, now)
    if action is OverdueAction.SKIP:
        return action

    verdict: AdjudicationVerdict | None = None
    if action is OverdueAction.DEFAULT_WIN:
        verdict = await _adjudicate_snapshot(
            snapshot, collect_evidence(snapshot.match, secondary=False)
        )
    elif action is OverdueAction.ADJUDICATE:
        verdict = await _adjudicate_snapshot(snapshot, all_evidence(snapshot.match))

    async with database.transaction():
        context = await load_match_context(match_id, for_update=True)
        if (
            context.match != snapshot.match
            or classify_overdue(context.match, context.tournament, now) is not action
        ):
            logger.info("Match %s changed while it was being swept, leaving it", match_id)
            return OverdueAction.SKIP
        outcome = await _apply_overdue_action(context, action, verdict, now)

    await finish_resolution(context, outcome)
    return action


async def sweep_overdue_matches(
    now: datetime_utc | None = None, tournament_id: TournamentId | None = None
) -> SweepSummary:
    now = now or datetime_utc.now()
    summary = SweepSummary()

    for match_id in await sql_get_overdue_match_ids(start_of_day(now), tournament_id):
        summary.checked += 1
        try:
            summary.count(await resolve_overdue_match(match_id, now))
        except (AutomatedResolutionFailed, HTTPException) as exc:
            reason = exc.detail if isinstance(exc, HTTPException) else str(exc)
            await _mark_resolution_failed(match_id, str(reason))
            summary.failed += 1

    logger.info(
        "Overdue sweep checked %s matches: %s double forfeits, %s no-show draws, "
        "%s default wins, %s adjudicated, %s failed, %s skipped",
        summary.checked,
        summary.double_forfeits,
        summary.no_show_draws,
        summary.default_wins,
        summary.adjudicated,
        summary.failed,
        summary.skipped,
    )
    return summary


async def run_overdue_resolution(
    tournament_id: TournamentId, user_id: UserId, now: datetime_utc | None = None
) -> SweepSummary:
    """Organizer-triggered sweep of one tournament, rate limited per tournament."""
    now = now or datetime_utc.now()
    async with database.transaction():
        await sql_lock_tournament(tournament_id)
        tournament = await sql_get_tournament(tournament_id)
        if tournament is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Could not find tournament with id {tournament_id}",
            )
        require_organizer(tournament, user_id)
        if tournament.status is not TournamentStatus.IN_PROGRESS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot resolve overdue matches of a tournament that is "
                f"{tournament.status.value}",
            )

        cooldown = timedelta(seconds=config.overdue_resolution_cooldown_seconds)
        last_run = tournament.last_auto_resolved_at
        if last_run is not None and now < last_run + cooldown:
            minutes_left = max(1, int((last_run + cooldown - now).total_seconds() // 60))
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Overdue matches were resolved recently, try again in "
                f"{minutes_left} minute(s).",
            )
        await sql_set_last_auto_resolved_at(tournament_id, now)

    return await sweep_overdue_matches(now, tournament_id)
