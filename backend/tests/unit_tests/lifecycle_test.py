import re

import pytest
from fastapi import HTTPException
from heliclockter import datetime_utc, timedelta

from arena.logic.matches.lifecycle import (
    VerdictAction,
    approve,
    captain_side,
    decide_replay_request,
    forfeit_result,
    knockout_result_problem,
    open_replay_request,
    plan_verdict,
    record_primary_report,
    record_secondary_report,
    request_secondary_evidence,
    reset_for_replay,
    respond_to_replay_request,
    result_from_verdict,
    withdraw_primary_report,
)
from arena.models.adjudication import AdjudicationStatus, AdjudicationVerdict
from arena.models.db.match import (
    Match,
    MatchResult,
    MatchStatus,
    ReplayRequestStatus,
    SecondaryEvidenceBody,
    TeamSide,
)
from arena.models.db.team import Team
from arena.models.db.tournament import Tournament, TournamentFormat
from arena.utils.dates import start_of_day
from arena.utils.id_types import MatchId, TeamId, TournamentId, UserId
from tests.unit_tests.fakes import days_ago, evidence, report, report_body, sample_stats, verified

NOW = datetime_utc.now()

HOME = Team(
    id=TeamId(1),
    tournament_id=TournamentId(1),
    name="Harbour FC",
    captain_id=UserId("captain-home"),
    created=days_ago(9),
)
AWAY = Team(
    id=TeamId(2),
    tournament_id=TournamentId(1),
    name="Rovers",
    captain_id=UserId("captain-away"),
    created=days_ago(9),
)


def _tournament(*, penalties: bool = False) -> Tournament:
    return Tournament(
        id=TournamentId(1),
        name="Spring Cup",
        organizer_id=UserId("organizer-1"),
        format=TournamentFormat.CUP,
        max_teams=8,
        penalties=penalties,
        registration_end=days_ago(10),
        start_date=days_ago(7),
        end_date=days_ago(-7),
        created=days_ago(20),
    )


def _match(**fields: object) -> Match:
    values: dict[str, object] = {
        "id": MatchId(7),
        "tournament_id": TournamentId(1),
        "home_team_id": HOME.id,
        "away_team_id": AWAY.id,
        "host_id": HOME.id,
        "round": "Round 1",
        "match_day": days_ago(0),
        "created": days_ago(5),
    }
    return Match.model_validate({**values, **fields})


def test_captain_side() -> None:
    match = _match()

    assert captain_side(match, HOME, AWAY, UserId("captain-home")) is TeamSide.HOME
    assert captain_side(match, HOME, AWAY, UserId("captain-away")) is TeamSide.AWAY
    with pytest.raises(HTTPException, match=re.escape("403: Only the captains")):
        captain_side(match, HOME, AWAY, UserId("someone-else"))


def test_primary_report_moves_to_awaiting_confirmation() -> None:
    reported = record_primary_report(
        _match(), TeamSide.HOME, HOME, report_body(2, 1), UserId("captain-home"), NOW
    )

    assert reported.status is MatchStatus.AWAITING_CONFIRMATION
    assert reported.home_report is not None
    assert reported.home_report.evidence[0].team_name == "Harbour FC"
    assert reported.away_report is None

    with pytest.raises(
        HTTPException, match=re.escape("400: Your team has already submitted a report")
    ):
        record_primary_report(
            reported, TeamSide.HOME, HOME, report_body(2, 1), UserId("captain-home"), NOW
        )


def test_primary_report_rejected_once_approved() -> None:
    with pytest.raises(HTTPException, match=re.escape("400: Cannot submit a result: match 7")):
        record_primary_report(
            _match(status=MatchStatus.APPROVED),
            TeamSide.AWAY,
            AWAY,
            report_body(0, 0),
            UserId("captain-away"),
            NOW,
        )


def test_withdraw_last_report_returns_to_scheduled() -> None:
    both = _match(
        status=MatchStatus.AWAITING_CONFIRMATION,
        home_report=report("captain-home", 1, 0),
        away_report=report("captain-away", 0, 1),
    )

    one_left = withdraw_primary_report(both, TeamSide.HOME)
    assert one_left.status is MatchStatus.AWAITING_CONFIRMATION
    assert one_left.home_report is None

    none_left = withdraw_primary_report(one_left, TeamSide.AWAY)
    assert none_left.status is MatchStatus.SCHEDULED

    with pytest.raises(HTTPException, match=re.escape("400: Cannot withdraw a report")):
        withdraw_primary_report(none_left, TeamSide.AWAY)


def test_secondary_report_only_when_requested() -> None:
    body = SecondaryEvidenceBody(evidence=evidence("https://cdn.example.com/history.png"))

    with pytest.raises(HTTPException, match=re.escape("400: Cannot submit secondary evidence")):
        record_secondary_report(_match(), TeamSide.HOME, HOME, body, UserId("captain-home"), NOW)

    waiting = _match(status=MatchStatus.NEEDS_SECONDARY_EVIDENCE)
    recorded = record_secondary_report(
        waiting, TeamSide.AWAY, AWAY, body, UserId("captain-away"), NOW
    )
    assert recorded.away_secondary_report is not None
    assert recorded.status is MatchStatus.NEEDS_SECONDARY_EVIDENCE
    assert not recorded.has_both_secondary_reports


def test_request_secondary_evidence_clears_earlier_submissions() -> None:
    body = SecondaryEvidenceBody(evidence=evidence())
    match = record_secondary_report(
        _match(status=MatchStatus.NEEDS_SECONDARY_EVIDENCE),
        TeamSide.HOME,
        HOME,
        body,
        UserId("captain-home"),
        NOW,
    )

    again = request_secondary_evidence(match, "Still unclear")

    assert again.home_secondary_report is None
    assert again.resolution_notes == "Still unclear"


@pytest.mark.parametrize(
    ("verdict", "expected"),
    [
        (verified(1, 0), VerdictAction.APPROVE),
        (
            AdjudicationVerdict(verification_status=AdjudicationStatus.VERIFIED),
            VerdictAction.DISPUTE,
        ),
        (
            AdjudicationVerdict(verification_status=AdjudicationStatus.NEEDS_SECONDARY_EVIDENCE),
            VerdictAction.REQUEST_SECONDARY_EVIDENCE,
        ),
        (
            AdjudicationVerdict(verification_status=AdjudicationStatus.REPLAY_REQUIRED),
            VerdictAction.SCHEDULE_REPLAY,
        ),
        (
            AdjudicationVerdict(verification_status=AdjudicationStatus.DISPUTED),
            VerdictAction.DISPUTE,
        ),
    ],
)
def test_plan_verdict(verdict: AdjudicationVerdict, expected: VerdictAction) -> None:
    assert plan_verdict(verdict) is expected


def test_result_from_verdict_penalizes_missing_stats() -> None:
    both = verified(2, 2, home_stats=sample_stats(), away_stats=sample_stats())
    full = result_from_verdict(both)
    partial = result_from_verdict(verified(2, 2, home_stats=sample_stats()))

    assert (full.home_stats_penalty, full.away_stats_penalty) == (False, False)
    assert (partial.home_stats_penalty, partial.away_stats_penalty) == (True, True)
    assert full.resolution_notes == "Scores match on both screenshots."


def test_forfeit_result() -> None:
    result = forfeit_result(TeamSide.AWAY, AWAY)

    assert (result.home_score, result.away_score) == (3, 0)
    assert result.away_stats_penalty and not result.home_stats_penalty
    assert result.was_auto_forfeited
    assert result.resolution_notes == "Rovers forfeited the match."


def test_knockout_result_problem() -> None:
    final = _match(round="Final")
    draw = MatchResult(home_score=1, away_score=1)
    shootout = MatchResult(home_score=1, away_score=1, pk_home_score=4, pk_away_score=3)

    assert knockout_result_problem(_match(), _tournament(), draw) is None
    decided = MatchResult(home_score=2, away_score=1)
    assert knockout_result_problem(final, _tournament(), decided) is None
    assert knockout_result_problem(final, _tournament(penalties=True), shootout) is None
    assert knockout_result_problem(final, _tournament(), shootout) is not None
    assert knockout_result_problem(final, _tournament(penalties=True), draw) is not None


def test_approve_keeps_winning_highlight() -> None:
    home_report = report("captain-home", 0, 2).model_copy(
        update={"highlight_url": "https://video.example.com/home"}
    )
    away_report = report("captain-away", 0, 2).model_copy(
        update={"highlight_url": "https://video.example.com/away"}
    )
    match = _match(
        status=MatchStatus.AWAITING_CONFIRMATION, home_report=home_report, away_report=away_report
    )

    approved = approve(match, MatchResult(home_score=0, away_score=2), NOW)

    assert approved.status is MatchStatus.APPROVED
    assert (approved.home_score, approved.away_score) == (0, 2)
    assert approved.highlight_url == "https://video.example.com/away"
    assert approved.approved_at == NOW

    with pytest.raises(HTTPException, match=re.escape("400: Cannot approve a result")):
        approve(approved, MatchResult(home_score=1, away_score=0), NOW)


def test_reset_for_replay_clears_the_result() -> None:
    approved = _match(
        status=MatchStatus.APPROVED,
        match_day=days_ago(3),
        home_score=4,
        away_score=0,
        home_report=report("captain-home", 4, 0),
        home_stats=sample_stats(),
        room_code="ABC123",
        room_code_set_at=days_ago(3),
        auto_resolution_attempted=True,
    )

    replay = reset_for_replay(approved, "Connection dropped", NOW)

    assert replay.status is MatchStatus.SCHEDULED
    assert replay.is_replay
    assert (replay.home_score, replay.away_score) == (None, None)
    assert replay.home_report is None and replay.home_stats is None
    assert replay.room_code is None and replay.room_code_set_at is None
    assert not replay.auto_resolution_attempted
    assert replay.match_day == start_of_day(NOW) + timedelta(days=1)
    assert replay.resolution_notes == "Connection dropped"
    assert (replay.id, replay.round, replay.home_team_id) == (approved.id, "Round 1", HOME.id)


def test_replay_request_handshake() -> None:
    requested = open_replay_request(_match(), UserId("captain-home"), "Lag", NOW)
    assert requested.replay_request is not None
    assert requested.replay_request.status is ReplayRequestStatus.PENDING

    with pytest.raises(HTTPException, match=re.escape("400: A replay request for this match")):
        open_replay_request(requested, UserId("captain-away"), "Lag", NOW)

    with pytest.raises(HTTPException, match=re.escape("403: The opposing captain must respond")):
        respond_to_replay_request(requested, UserId("captain-home"), True, NOW)

    with pytest.raises(HTTPException, match=re.escape("400: Only replay requests accepted")):
        decide_replay_request(requested, True, NOW)

    accepted = respond_to_replay_request(requested, UserId("captain-away"), True, NOW)
    assert accepted.replay_request is not None
    assert accepted.replay_request.status is ReplayRequestStatus.ACCEPTED
    assert accepted.replay_request.responded_by == "captain-away"

    kept = decide_replay_request(accepted, False, NOW)
    assert kept.status is MatchStatus.SCHEDULED
    assert not kept.is_replay
    assert kept.replay_request is not None
    assert kept.replay_request.status is ReplayRequestStatus.ORGANIZER_REJECTED

    replayed = decide_replay_request(accepted, True, NOW)
    assert replayed.is_replay
    assert replayed.replay_request is not None
    assert replayed.replay_request.status is ReplayRequestStatus.APPROVED
    assert replayed.resolution_notes == "Replay approved by the organizer: Lag"


def test_rejected_replay_request_can_be_reopened() -> None:
    requested = open_replay_request(_match(), UserId("captain-home"), "Lag", NOW)
    rejected = respond_to_replay_request(requested, UserId("captain-away"), False, NOW)

    assert rejected.replay_request is not None
    assert rejected.replay_request.status is ReplayRequestStatus.REJECTED

    reopened = open_replay_request(rejected, UserId("captain-away"), "Power cut", NOW)
    assert reopened.replay_request is not None
    assert reopened.replay_request.requested_by == "captain-away"
