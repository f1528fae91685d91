from enum import auto

from heliclockter import datetime_utc
from pydantic import BaseModel, Field

from arena.models.db.match import EvidenceItem, TeamMatchStats
from arena.utils.id_types import UserId
from arena.utils.types import EnumAutoStr


class AdjudicationStatus(EnumAutoStr):
    VERIFIED = auto()
    DISPUTED = auto()
    NEEDS_SECONDARY_EVIDENCE = auto()
    REPLAY_REQUIRED = auto()


class VerifiedScores(BaseModel):
    home: int = Field(ge=0)
    away: int = Field(ge=0)
    pk_home: int | None = Field(default=None, ge=0)
    pk_away: int | None = Field(default=None, ge=0)


class AdjudicationRequest(BaseModel):
    evidence: list[EvidenceItem]
    home_team_name: str
    away_team_name: str
    scheduled_date: datetime_utc
    room_code_set_at: datetime_utc | None = None


class AdjudicationVerdict(BaseModel):
    verification_status: AdjudicationStatus
    verified_scores: VerifiedScores | None = None
    reasoning: str | None = None
    home_stats: TeamMatchStats | None = None
    away_stats: TeamMatchStats | None = None
    cheating_flag: UserId | None = None
