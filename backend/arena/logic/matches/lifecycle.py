"""
Pure state transitions of a single match.

Nothing here touches storage: every function takes the current match and returns the next one,
raising an HTTPException when the transition is not allowed from the current state.
"""

from enum import auto

from fastapi import HTTPException
from heliclockter import datetime_utc, timedelta
from starlette import status

from arena.logic.scheduling.rounds import is_knockout_round
from arena.models.adjudication import AdjudicationRequest, AdjudicationStatus, AdjudicationVerdict
from arena.models.db.match import (
    EvidenceItem,
    Match,
    MatchReport,
    MatchReportBody,
    MatchResult,
    MatchStatus,
    ReplayRequest,
    ReplayRequestStatus,
    SecondaryEvidenceBody,
    SecondaryEvidenceReport,
    TeamSide,
)
from arena.models.db.team import Team
from arena.models.db.tournament import Tournament
from arena.utils.dates import start_of_day
from arena.utils.id_types import UserId
from arena.utils.types import EnumAutoStr

ADJUDICATION_FAILED_NOTE = (
    "AI Review Failed: automated verification was unavailable. Organizer review required."
)
AUTOMATED_RESOLUTION_FAILED_NOTE = "Automated resolution failed. Organizer review required."

OPEN_STATUSES = (
    MatchStatus.SCHEDULED,
    MatchStatus.AWAITING_CONFIRMATION,
    MatchStatus.NEEDS_SECONDARY_EVIDENCE,
    MatchStatus.DISPUTED,
)


class VerdictAction(EnumAutoStr):
    APPROVE = auto()
    REQUEST_SECONDARY_EVIDENCE = auto()
    SCHEDULE_REPLAY = auto()
    DISPUTE = auto()


def require_status(match: Match, *allowed: MatchStatus, action: str) -> None:
    if match.status not in allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot {action}: match {match.id} is {match.status.value}",
        )


def captain_side(match: Match, home_team: Team, away_team: Team, user_id: UserId) -> TeamSide:
    if home_team.is_captain(user_id):
        return TeamSide.HOME
    if away_team.is_captain(user_id):
        return TeamSide.AWAY
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=f"Only the captains of the two teams can act on match {match.id}",
    )


def _tag_evidence(evidence: list[EvidenceItem], team: Team) -> list[EvidenceItem]:
    return [item.model_copy(update={"team_name": team.name}) for item in evidence]


def record_primary_report(
    match: Match,
    side: TeamSide,
    team: Team,
    body: MatchReportBody,
    user_id: UserId,
    now: datetime_utc,
) -> Match:
    require_status(
        match,
        MatchStatus.SCHEDULED,
        MatchStatus.AWAITING_CONFIRMATION,
        action="submit a result",
    )
    if match.report_for(side) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Your team has already submitted a report for this match",
        )

    report = MatchReport(
        submitted_by=user_id,
        home_score=body.home_score,
        away_score=body.away_score,
        pk_home_score=body.pk_home_score,
        pk_away_score=body.pk_away_score,
        evidence=_tag_evidence(body.evidence, team),
        highlight_url=body.highlight_url,
        submitted_at=now,
    )
    field = "home_report" if side is TeamSide.HOME else "away_report"
    return match.model_copy(update={field: report, "status": MatchStatus.AWAITING_CONFIRMATION})


def withdraw_primary_report(match: Match, side: TeamSide) -> Match:
    require_status(match, MatchStatus.AWAITING_CONFIRMATION, action="withdraw a report")
    if match.report_for(side) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Your team has not submitted a report for this match",
        )

    field = "home_report" if side is TeamSide.HOME else "away_report"
    withdrawn = match.model_copy(update={field: None})
    if withdrawn.home_report is None and withdrawn.away_report is None:
        withdrawn = withdrawn.model_copy(update={"status": MatchStatus.SCHEDULED})
    return withdrawn


def record_secondary_report(
    match: Match,
    side: TeamSide,
    team: Team,
    body: SecondaryEvidenceBody,
    user_id: UserId,
    now: datetime_utc,
) -> Match:
    require_status(
        match, MatchStatus.NEEDS_SECONDARY_EVIDENCE, action="submit secondary evidence"
    )
    if match.secondary_report_for(side) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Your team has already submitted secondary evidence for this match",
        )

    report = SecondaryEvidenceReport(
        submitted_by=user_id, evidence=_tag_evidence(body.evidence, team), submitted_at=now
    )
    field = "home_secondary_report" if side is TeamSide.HOME else "away_secondary_report"
    return match.model_copy(update={field: report})


def collect_evidence(match: Match, *, secondary: bool) -> list[EvidenceItem]:
    evidence: list[EvidenceItem] = []
    for side in (TeamSide.HOME, TeamSide.AWAY):
        report = match.secondary_report_for(side) if secondary else match.report_for(side)
        if report is not None:
            evidence.extend(report.evidence)
    return evidence


def build_adjudication_request(
    match: Match, home_team: Team, away_team: Team, evidence: list[EvidenceItem]
) -> AdjudicationRequest:
    return AdjudicationRequest(
        evidence=evidence,
        home_team_name=home_team.name,
        away_team_name=away_team.name,
        scheduled_date=match.match_day,
        room_code_set_at=match.room_code_set_at,
    )


def plan_verdict(verdict: AdjudicationVerdict) -> VerdictAction:
    match verdict.verification_status:
        case AdjudicationStatus.VERIFIED if verdict.verified_scores is not None:
            return VerdictAction.APPROVE
        case AdjudicationStatus.NEEDS_SECONDARY_EVIDENCE:
            return VerdictAction.REQUEST_SECONDARY_EVIDENCE
        case AdjudicationStatus.REPLAY_REQUIRED:
            return VerdictAction.SCHEDULE_REPLAY
        case _:
            return VerdictAction.DISPUTE


def result_from_verdict(verdict: AdjudicationVerdict) -> MatchResult:
    scores = verdict.verified_scores
    assert scores is not None
    # Missing stats for either side means the evidence could not back up the stat lines.
    stats_penalty = verdict.home_stats is None or verdict.away_stats is None
    return MatchResult(
        home_score=scores.home,
        away_score=scores.away,
        pk_home_score=scores.pk_home,
        pk_away_score=scores.pk_away,
        home_stats=verdict.home_stats,
        away_stats=verdict.away_stats,
        home_stats_penalty=stats_penalty,
        away_stats_penalty=stats_penalty,
        resolution_notes=verdict.reasoning,
    )


def forfeit_result(forfeiting_side: TeamSide, forfeiting_team: Team) -> MatchResult:
    scores = {forfeiting_side: 0, forfeiting_side.opponent: 3}
    return MatchResult(
        home_score=scores[TeamSide.HOME],
        away_score=scores[TeamSide.AWAY],
        home_stats_penalty=forfeiting_side is TeamSide.HOME,
        away_stats_penalty=forfeiting_side is TeamSide.AWAY,
        was_auto_forfeited=True,
        resolution_notes=f"{forfeiting_team.name} forfeited the match.",
    )


def default_win_result(reporting_side: TeamSide, verdict: AdjudicationVerdict) -> MatchResult:
    """Awarded to the only side that reported when the deadline passes."""
    scores = {reporting_side: 3, reporting_side.opponent: 0}
    return MatchResult(
        home_score=scores[TeamSide.HOME],
        away_score=scores[TeamSide.AWAY],
        home_stats=verdict.home_stats,
        away_stats=verdict.away_stats,
        home_stats_penalty=reporting_side is not TeamSide.HOME,
        away_stats_penalty=reporting_side is not TeamSide.AWAY,
        was_auto_forfeited=True,
        resolution_notes="Auto-resolved: only one team reported a result before the deadline.",
    )


def no_show_result(*, replay: bool) -> MatchResult:
    return MatchResult(
        home_score=0,
        away_score=0,
        home_stats_penalty=True,
        away_stats_penalty=True,
        was_auto_forfeited=True,
        resolution_notes=(
            "Replay not played before the deadline: double forfeit."
            if replay
            else "No result reported before the deadline: recorded as a 0-0 draw."
        ),
    )


def knockout_result_problem(
    match: Match, tournament: Tournament, result: MatchResult
) -> str | None:
    if not is_knockout_round(match.round) or result.home_score != result.away_score:
        return None
    if (
        tournament.penalties
        and result.pk_home_score is not None
        and result.pk_away_score is not None
        and result.pk_home_score != result.pk_away_score
    ):
        return None
    return f"{match.round} matches must have a winner, a draw needs a penalty shoot-out decider"


def _choose_highlight(match: Match, result: MatchResult) -> str | None:
    sides = [TeamSide.HOME, TeamSide.AWAY]
    if result.away_score > result.home_score:
        sides.reverse()
    for side in sides:
        report = match.report_for(side)
        if report is not None and report.highlight_url:
            return report.highlight_url
    return None


def approve(match: Match, result: MatchResult, now: datetime_utc) -> Match:
    require_status(match, *OPEN_STATUSES, action="approve a result")
    return match.model_copy(
        update={
            **result.model_dump(),
            "home_stats": result.home_stats,
            "away_stats": result.away_stats,
            "status": MatchStatus.APPROVED,
            "highlight_url": _choose_highlight(match, result),
            "approved_at": now,
        }
    )


def replay_match_day(match: Match, now: datetime_utc) -> datetime_utc:
    """A replay is played no earlier than the day after it was ordered."""
    earliest = start_of_day(now) + timedelta(days=1)
    return max(match.match_day, earliest)


def reset_for_replay(
    match: Match,
    note: str,
    now: datetime_utc,
    *,
    replay_request: ReplayRequest | None = None,
) -> Match:
    """Send a match back to scheduled with a clean slate, keeping its slot in the bracket."""
    return match.model_copy(
        update={
            "match_day": replay_match_day(match, now),
            "status": MatchStatus.SCHEDULED,
            "home_score": None,
            "away_score": None,
            "pk_home_score": None,
            "pk_away_score": None,
            "home_report": None,
            "away_report": None,
            "home_secondary_report": None,
            "away_secondary_report": None,
            "home_stats": None,
            "away_stats": None,
            "home_stats_penalty": False,
            "away_stats_penalty": False,
            "was_auto_forfeited": False,
            "auto_resolution_attempted": False,
            "replay_request": replay_request,
            "room_code": None,
            "room_code_set_at": None,
            "highlight_url": None,
            "approved_at": None,
            "is_replay": True,
            "resolution_notes": note,
        }
    )


def with_status(match: Match, new_status: MatchStatus, note: str | None) -> Match:
    return match.model_copy(update={"status": new_status, "resolution_notes": note})


def request_secondary_evidence(match: Match, note: str | None) -> Match:
    # Earlier secondary evidence was not enough, both captains submit again.
    return match.model_copy(
        update={
            "status": MatchStatus.NEEDS_SECONDARY_EVIDENCE,
            "resolution_notes": note,
            "home_secondary_report": None,
            "away_secondary_report": None,
        }
    )


def open_replay_request(match: Match, user_id: UserId, reason: str, now: datetime_utc) -> Match:
    require_status(match, *OPEN_STATUSES, action="request a replay")
    if match.replay_request is not None and match.replay_request.status.is_open:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A replay request for this match is already in progress",
        )
    request = ReplayRequest(requested_by=user_id, reason=reason, requested_at=now)
    return match.model_copy(update={"replay_request": request})


def respond_to_replay_request(
    match: Match, user_id: UserId, accept: bool, now: datetime_utc
) -> Match:
    request = match.replay_request
    if request is None or request.status is not ReplayRequestStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="There is no pending replay request for this match",
        )
    if str(request.requested_by) == str(user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="The opposing captain must respond to a replay request",
        )

    responded = request.model_copy(
        update={
            "status": ReplayRequestStatus.ACCEPTED if accept else ReplayRequestStatus.REJECTED,
            "responded_by": user_id,
            "responded_at": now,
        }
    )
    return match.model_copy(update={"replay_request": responded})


def decide_replay_request(match: Match, approve_replay: bool, now: datetime_utc) -> Match:
    request = match.replay_request
    if request is None or request.status is not ReplayRequestStatus.ACCEPTED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only replay requests accepted by both captains can be decided",
        )

    if not approve_replay:
        rejected = request.model_copy(update={"status": ReplayRequestStatus.ORGANIZER_REJECTED})
        return match.model_copy(update={"replay_request": rejected})

    require_status(match, *OPEN_STATUSES, action="schedule a replay")
    approved = request.model_copy(update={"status": ReplayRequestStatus.APPROVED})
    return reset_for_replay(
        match,
        f"Replay approved by the organizer: {request.reason}",
        now,
        replay_request=approved,
    )
