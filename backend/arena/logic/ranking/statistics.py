from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from pydantic import BaseModel

from arena.models.db.match import Match, TeamMatchStats, TeamSide
from arena.models.db.player_stats import PerformanceHistoryEntry, PlayerStats
from arena.models.db.tournament import Tournament

Direction = Literal[1, -1]

_PASS_ACCURACY_QUANTUM = Decimal("0.0001")


def pass_accuracy_percentage(stats: TeamMatchStats) -> Decimal | None:
    if stats.passes <= 0:
        return None
    accuracy = Decimal(stats.successful_passes) * 100 / Decimal(stats.passes)
    return accuracy.quantize(_PASS_ACCURACY_QUANTUM, rounding=ROUND_HALF_UP)


def calculate_performance_points(stats: TeamMatchStats, goals_for: int, goals_against: int) -> int:
    points = 0
    if goals_for > goals_against:
        points += 10
    elif goals_for == goals_against:
        points += 5
    if goals_against == 0:
        points += 5

    points += goals_for
    points += stats.shots_on_target // 2
    points += stats.interceptions // 10
    points += stats.tackles // 5
    points += stats.saves

    if stats.possession > 50:
        points += 2
    if stats.passes > 0 and stats.successful_passes / stats.passes > 0.75:
        points += 2
    if stats.fouls == 0 and stats.offsides == 0:
        points += 2
    return points


def team_performance_points(match: Match, side: TeamSide) -> int:
    """Performance points a team earned from an approved match, zero without extracted stats."""
    stats = match.stats_for(side)
    goals_for = match.score_for(side)
    goals_against = match.score_for(side.opponent)
    if stats is None or goals_for is None or goals_against is None:
        return 0
    return calculate_performance_points(stats, goals_for, goals_against)


class CaptainContribution(BaseModel):
    """What one approved match adds to the cumulative statistics of a team's captain."""

    goals: int
    conceded: int
    # None when the side was penalized or no stats were extracted.
    detailed_stats: TeamMatchStats | None = None


def captain_contribution(match: Match, side: TeamSide) -> CaptainContribution:
    return CaptainContribution(
        goals=match.score_for(side) or 0,
        conceded=match.score_for(side.opponent) or 0,
        detailed_stats=None if match.stats_penalty_for(side) else match.stats_for(side),
    )


def _average_pass_accuracy(pass_accuracy_sum: Decimal, matches_with_pass_stats: int) -> int:
    if matches_with_pass_stats <= 0:
        return 0
    average = pass_accuracy_sum / Decimal(matches_with_pass_stats)
    return int(average.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _update_performance_history(
    history: list[PerformanceHistoryEntry],
    tournament: Tournament,
    goals: int,
    direction: Direction,
) -> list[PerformanceHistoryEntry]:
    updated: list[PerformanceHistoryEntry] = []
    found = False
    for entry in history:
        if entry.tournament_id != tournament.id:
            updated.append(entry)
            continue

        found = True
        entry = entry.model_copy(
            update={
                "goals": entry.goals + direction * goals,
                "matches_played": entry.matches_played + direction,
            }
        )
        if entry.matches_played > 0:
            updated.append(entry)

    if not found and direction > 0:
        updated.append(
            PerformanceHistoryEntry(
                tournament_id=tournament.id,
                tournament_name=tournament.name,
                goals=goals,
                assists=0,
                matches_played=1,
            )
        )
    return updated


def apply_captain_contribution(
    stats: PlayerStats,
    contribution: CaptainContribution,
    tournament: Tournament,
    direction: Direction = 1,
) -> PlayerStats:
    """
    Add (direction 1) or remove (direction -1) one match from a captain's statistics.

    Removing exactly undoes adding the same contribution, so a reverted approval restores the
    previous statistics value for value.
    """
    goals, conceded = contribution.goals, contribution.conceded
    updated = stats.model_copy(deep=True)

    updated.total_matches += direction
    if goals > conceded:
        updated.wins += direction
    elif goals == conceded:
        updated.draws += direction
    else:
        updated.losses += direction
    updated.goals += direction * goals
    updated.conceded += direction * conceded
    if conceded == 0:
        updated.clean_sheets += direction

    if (detailed := contribution.detailed_stats) is not None:
        updated.shots += direction * detailed.shots
        updated.shots_on_target += direction * detailed.shots_on_target
        updated.passes += direction * detailed.passes
        updated.tackles += direction * detailed.tackles
        updated.interceptions += direction * detailed.interceptions
        updated.saves += direction * detailed.saves
        if (accuracy := pass_accuracy_percentage(detailed)) is not None:
            updated.pass_accuracy_sum += direction * accuracy
            updated.matches_with_pass_stats += direction

    updated.avg_pass_accuracy = _average_pass_accuracy(
        updated.pass_accuracy_sum, updated.matches_with_pass_stats
    )
    updated.performance_history = _update_performance_history(
        updated.performance_history, tournament, goals, direction
    )
    return updated
