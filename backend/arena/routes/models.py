from pydantic import BaseModel

from arena.logic.overdue import SweepSummary
from arena.logic.progression import ProgressionResult
from arena.models.db.match import Match
from arena.models.db.player_stats import PlayerStats
from arena.models.db.standing import StandingRecord, StandingWithTeamName
from arena.models.db.team import Team
from arena.models.db.tournament import Tournament


class SuccessResponse(BaseModel):
    success: bool = True


class DataResponse[DataT](BaseModel):
    data: DataT


class TournamentResponse(DataResponse[Tournament]):
    pass


class TournamentsResponse(DataResponse[list[Tournament]]):
    pass


class TeamResponse(DataResponse[Team]):
    pass


class TeamsResponse(DataResponse[list[Team]]):
    pass


class SingleMatchResponse(DataResponse[Match]):
    pass


class MatchesResponse(DataResponse[list[Match]]):
    pass


class StandingsResponse(DataResponse[list[StandingWithTeamName]]):
    pass


class RecalculatedStandingsResponse(DataResponse[list[StandingRecord]]):
    pass


class GroupTablesResponse(DataResponse[dict[str, list[StandingRecord]]]):
    pass


class ProgressionResponse(DataResponse[ProgressionResult]):
    pass


class SweepSummaryResponse(DataResponse[SweepSummary]):
    pass


class PlayerStatsResponse(DataResponse[PlayerStats | None]):
    pass
