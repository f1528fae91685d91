from pydantic import BaseModel

from arena.models.db.shared import BaseModelORM
from arena.utils.id_types import StandingId, TeamId, TournamentId


class StandingRecord(BaseModel):
    team_id: TeamId
    matches_played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    points: int = 0
    clean_sheets: int = 0
    ranking: int = 0

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against


class StandingInsertable(BaseModelORM):
    tournament_id: TournamentId
    team_id: TeamId
    matches_played: int
    wins: int
    draws: int
    losses: int
    goals_for: int
    goals_against: int
    goal_difference: int
    points: int
    clean_sheets: int
    ranking: int


class Standing(StandingInsertable):
    id: StandingId


class StandingWithTeamName(Standing):
    team_name: str
