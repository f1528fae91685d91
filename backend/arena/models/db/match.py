from enum import auto
from typing import Any

from heliclockter import datetime_utc
from pydantic import BaseModel, Field, field_validator, model_validator

from arena.models.db.shared import BaseModelORM, parse_json_column
from arena.utils.id_types import MatchId, TeamId, TournamentId, UserId
from arena.utils.types import EnumAutoStr


class MatchStatus(EnumAutoStr):
    SCHEDULED = auto()
    AWAITING_CONFIRMATION = auto()
    NEEDS_SECONDARY_EVIDENCE = auto()
    DISPUTED = auto()
    APPROVED = auto()


class TeamSide(EnumAutoStr):
    HOME = auto()
    AWAY = auto()

    @property
    def opponent(self) -> "TeamSide":
        return TeamSide.AWAY if self is TeamSide.HOME else TeamSide.HOME


class EvidenceType(EnumAutoStr):
    MATCH_STATS = auto()
    MATCH_HISTORY = auto()


class EvidenceItem(BaseModel):
    type: EvidenceType
    image_uri: str = Field(min_length=1)
    team_name: str = ""


class TeamMatchStats(BaseModel):
    possession: int = 0
    shots: int = 0
    shots_on_target: int = 0
    fouls: int = 0
    offsides: int = 0
    corner_kicks: int = 0
    free_kicks: int = 0
    passes: int = 0
    successful_passes: int = 0
    crosses: int = 0
    interceptions: int = 0
    tackles: int = 0
    saves: int = 0
    pk_score: int | None = None


class MatchReport(BaseModel):
    submitted_by: UserId
    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)
    pk_home_score: int | None = Field(default=None, ge=0)
    pk_away_score: int | None = Field(default=None, ge=0)
    evidence: list[EvidenceItem] = Field(default_factory=list)
    highlight_url: str | None = None
    submitted_at: datetime_utc


class SecondaryEvidenceReport(BaseModel):
    submitted_by: UserId
    evidence: list[EvidenceItem] = Field(min_length=1)
    submitted_at: datetime_utc


class ReplayRequestStatus(EnumAutoStr):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    APPROVED = "approved"
    ORGANIZER_REJECTED = "organizer-rejected"

    @property
    def is_open(self) -> bool:
        return self in (ReplayRequestStatus.PENDING, ReplayRequestStatus.ACCEPTED)


class ReplayRequest(BaseModel):
    requested_by: UserId
    reason: str
    status: ReplayRequestStatus = ReplayRequestStatus.PENDING
    requested_at: datetime_utc
    responded_by: UserId | None = None
    responded_at: datetime_utc | None = None


class Fixture(BaseModel):
    """A pairing produced by fixture generation, not yet placed on a match day."""

    home_team_id: TeamId
    away_team_id: TeamId
    round: str

    @model_validator(mode="after")
    def check_distinct_teams(self) -> "Fixture":
        if self.home_team_id == self.away_team_id:
            raise ValueError("A team cannot be paired with itself")
        return self


class MatchResult(BaseModel):
    """Everything an approval freezes onto a match."""

    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)
    pk_home_score: int | None = None
    pk_away_score: int | None = None
    home_stats: TeamMatchStats | None = None
    away_stats: TeamMatchStats | None = None
    home_stats_penalty: bool = False
    away_stats_penalty: bool = False
    was_auto_forfeited: bool = False
    resolution_notes: str | None = None


class MatchInsertable(BaseModelORM):
    tournament_id: TournamentId
    home_team_id: TeamId
    away_team_id: TeamId
    host_id: TeamId
    round: str
    match_day: datetime_utc
    status: MatchStatus = MatchStatus.SCHEDULED
    home_score: int | None = None
    away_score: int | None = None
    pk_home_score: int | None = None
    pk_away_score: int | None = None
    home_report: MatchReport | None = None
    away_report: MatchReport | None = None
    home_secondary_report: SecondaryEvidenceReport | None = None
    away_secondary_report: SecondaryEvidenceReport | None = None
    home_stats: TeamMatchStats | None = None
    away_stats: TeamMatchStats | None = None
    home_stats_penalty: bool = False
    away_stats_penalty: bool = False
    resolution_notes: str | None = None
    was_auto_forfeited: bool = False
    is_replay: bool = False
    auto_resolution_attempted: bool = False
    replay_request: ReplayRequest | None = None
    room_code: str | None = None
    room_code_set_at: datetime_utc | None = None
    highlight_url: str | None = None
    approved_at: datetime_utc | None = None
    created: datetime_utc

    @field_validator(
        "home_report",
        "away_report",
        "home_secondary_report",
        "away_secondary_report",
        "home_stats",
        "away_stats",
        "replay_request",
        mode="before",
    )
    @classmethod
    def parse_json_fields(cls, value: Any) -> Any:
        return parse_json_column(value)


class Match(MatchInsertable):
    id: MatchId

    def team_id_for(self, side: TeamSide) -> TeamId:
        return self.home_team_id if side is TeamSide.HOME else self.away_team_id

    def side_of_team(self, team_id: TeamId) -> TeamSide | None:
        if team_id == self.home_team_id:
            return TeamSide.HOME
        if team_id == self.away_team_id:
            return TeamSide.AWAY
        return None

    def report_for(self, side: TeamSide) -> MatchReport | None:
        return self.home_report if side is TeamSide.HOME else self.away_report

    def secondary_report_for(self, side: TeamSide) -> SecondaryEvidenceReport | None:
        return self.home_secondary_report if side is TeamSide.HOME else self.away_secondary_report

    def stats_for(self, side: TeamSide) -> TeamMatchStats | None:
        return self.home_stats if side is TeamSide.HOME else self.away_stats

    def stats_penalty_for(self, side: TeamSide) -> bool:
        return self.home_stats_penalty if side is TeamSide.HOME else self.away_stats_penalty

    def score_for(self, side: TeamSide) -> int | None:
        return self.home_score if side is TeamSide.HOME else self.away_score

    @property
    def has_both_primary_reports(self) -> bool:
        return self.home_report is not None and self.away_report is not None

    @property
    def has_both_secondary_reports(self) -> bool:
        return self.home_secondary_report is not None and self.away_secondary_report is not None

    @property
    def is_scored(self) -> bool:
        return (
            self.status is MatchStatus.APPROVED
            and self.home_score is not None
            and self.away_score is not None
        )


class MatchReportBody(BaseModel):
    home_score: int = Field(ge=0, le=99)
    away_score: int = Field(ge=0, le=99)
    pk_home_score: int | None = Field(default=None, ge=0)
    pk_away_score: int | None = Field(default=None, ge=0)
    evidence: list[EvidenceItem] = Field(min_length=1)
    highlight_url: str | None = None


class SecondaryEvidenceBody(BaseModel):
    evidence: list[EvidenceItem] = Field(min_length=1)


class MatchOverrideBody(BaseModel):
    home_score: int = Field(ge=0, le=99)
    away_score: int = Field(ge=0, le=99)
    pk_home_score: int | None = Field(default=None, ge=0)
    pk_away_score: int | None = Field(default=None, ge=0)
    resolution_notes: str | None = None


class ReplayRequestBody(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class ReplayDecisionBody(BaseModel):
    approve: bool


class ForceReplayBody(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class RoomCodeBody(BaseModel):
    room_code: str = Field(min_length=1, max_length=32)
