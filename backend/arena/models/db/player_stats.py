from decimal import Decimal
from typing import Any

from heliclockter import datetime_utc
from pydantic import BaseModel, Field, field_validator

from arena.models.db.shared import BaseModelORM, parse_json_column
from arena.utils.id_types import TournamentId, UserId


class PerformanceHistoryEntry(BaseModel):
    tournament_id: TournamentId
    tournament_name: str
    goals: int = 0
    assists: int = 0
    matches_played: int = 0


class PlayerStats(BaseModelORM):
    user_id: UserId
    total_matches: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    goals: int = 0
    conceded: int = 0
    clean_sheets: int = 0
    avg_pass_accuracy: int = 0
    pass_accuracy_sum: Decimal = Decimal("0")
    matches_with_pass_stats: int = 0
    shots: int = 0
    shots_on_target: int = 0
    passes: int = 0
    tackles: int = 0
    interceptions: int = 0
    saves: int = 0
    performance_history: list[PerformanceHistoryEntry] = Field(default_factory=list)
    updated: datetime_utc | None = None

    @field_validator("performance_history", mode="before")
    @classmethod
    def parse_performance_history(cls, value: Any) -> Any:
        return parse_json_column(value) if value is not None else []
