from enum import auto

from heliclockter import datetime_utc
from pydantic import BaseModel, Field, model_validator

from arena.models.db.shared import BaseModelORM
from arena.utils.id_types import TournamentId, UserId
from arena.utils.types import EnumAutoStr


class TournamentFormat(EnumAutoStr):
    LEAGUE = "league"
    CUP = "cup"
    CHAMPIONS_LEAGUE = "champions-league"
    SWISS = "swiss"

    @property
    def has_knockout_stage(self) -> bool:
        return self is not TournamentFormat.LEAGUE


class TournamentStatus(EnumAutoStr):
    PENDING = auto()
    OPEN_FOR_REGISTRATION = auto()
    GENERATING_FIXTURES = auto()
    READY_TO_START = auto()
    IN_PROGRESS = auto()
    COMPLETED = auto()


# Status only ever moves forward through this sequence.
TOURNAMENT_STATUS_ORDER = [
    TournamentStatus.PENDING,
    TournamentStatus.OPEN_FOR_REGISTRATION,
    TournamentStatus.GENERATING_FIXTURES,
    TournamentStatus.READY_TO_START,
    TournamentStatus.IN_PROGRESS,
    TournamentStatus.COMPLETED,
]


class TournamentInsertable(BaseModelORM):
    name: str
    organizer_id: UserId
    format: TournamentFormat
    max_teams: int
    team_count: int = 0
    home_and_away: bool = False
    penalties: bool = False
    extra_time: bool = False
    status: TournamentStatus = TournamentStatus.OPEN_FOR_REGISTRATION
    registration_end: datetime_utc
    start_date: datetime_utc
    end_date: datetime_utc
    last_auto_resolved_at: datetime_utc | None = None
    ended_at: datetime_utc | None = None
    created: datetime_utc


class Tournament(TournamentInsertable):
    id: TournamentId

    def is_organizer(self, user_id: UserId) -> bool:
        return str(self.organizer_id) == str(user_id)


class TournamentBody(BaseModel):
    name: str = Field(min_length=1)
    format: TournamentFormat
    max_teams: int = Field(ge=2, le=256)
    home_and_away: bool = False
    penalties: bool = False
    extra_time: bool = False
    registration_end: datetime_utc
    start_date: datetime_utc
    end_date: datetime_utc

    @model_validator(mode="after")
    def check_schedule_window(self) -> "TournamentBody":
        if self.registration_end > self.start_date:
            raise ValueError("Registration must close before the tournament starts")
        if self.start_date > self.end_date:
            raise ValueError("The tournament must start before it ends")
        return self


class StageProgressionBody(BaseModel):
    expected_stage: str | None = None
