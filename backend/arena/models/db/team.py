from typing import Any

from heliclockter import datetime_utc
from pydantic import BaseModel, Field, field_validator

from arena.models.db.shared import BaseModelORM, parse_json_column
from arena.utils.id_types import TeamId, TournamentId, UserId


class TeamPlayer(BaseModel):
    user_id: UserId
    username: str
    is_captain: bool = False


class TeamInsertable(BaseModelORM):
    tournament_id: TournamentId
    name: str
    captain_id: UserId
    players: list[TeamPlayer] = Field(default_factory=list)
    is_approved: bool = False
    performance_points: int = 0
    created: datetime_utc

    @field_validator("players", mode="before")
    @classmethod
    def parse_players(cls, value: Any) -> Any:
        return parse_json_column(value) if value is not None else []


class Team(TeamInsertable):
    id: TeamId

    def is_captain(self, user_id: UserId) -> bool:
        return str(self.captain_id) == str(user_id)


class TeamBody(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    players: list[TeamPlayer] = Field(default_factory=list)


class TeamApprovalBody(BaseModel):
    is_approved: bool
