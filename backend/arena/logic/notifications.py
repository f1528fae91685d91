from enum import auto
from typing import Any

import httpx

from arena.config import config
from arena.models.db.match import Match
from arena.models.db.standing import StandingRecord
from arena.models.db.team import Team
from arena.models.db.tournament import Tournament
from arena.utils.id_types import TeamId, UserId
from arena.utils.logging import logger
from arena.utils.types import EnumAutoStr

PODIUM_BADGES = {1: "tournament_winner", 2: "tournament_runner_up", 3: "tournament_third_place"}


class CollaboratorEvent(EnumAutoStr):
    NOTIFICATION = auto()
    REPUTATION_WARNING = auto()
    BADGE_AWARDED = auto()
    ACHIEVEMENTS_CHECK = auto()


async def publish_event(event: CollaboratorEvent, payload: dict[str, Any]) -> bool:
    """
    Hand an event to the notification and awards services. Delivery failures are logged and
    reported through the return value, they never propagate to the caller.
    """
    if config.collaborator_webhook_url is None:
        logger.debug("No collaborator webhook configured, dropping %s event", event.value)
        return False

    try:
        async with httpx.AsyncClient(timeout=config.collaborator_timeout_seconds) as client:
            response = await client.post(
                config.collaborator_webhook_url, json={"event": event.value, **payload}
            )
            response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("Failed to deliver %s event: %s", event.value, exc)
        return False
    return True


async def send_notification(user_id: UserId, title: str, body: str, link: str) -> None:
    await publish_event(
        CollaboratorEvent.NOTIFICATION,
        {"user_id": str(user_id), "title": title, "body": body, "link": link},
    )


async def issue_reputation_warning(user_id: UserId, match: Match) -> None:
    logger.info("Issuing reputation warning: user_id=%s match_id=%s", user_id, match.id)
    await publish_event(
        CollaboratorEvent.REPUTATION_WARNING,
        {
            "user_id": str(user_id),
            "match_id": int(match.id),
            "warnings_increment": 1,
            "incident": "AI flagged submission of falsified match evidence.",
        },
    )


async def notify_match_resolved(match: Match, home_team: Team, away_team: Team) -> None:
    link = f"/tournaments/{int(match.tournament_id)}/matches/{int(match.id)}"
    if match.home_score is not None and match.away_score is not None:
        title = "Match result approved"
        body = f"{home_team.name} {match.home_score} - {match.away_score} {away_team.name}"
    else:
        title = f"Match update: {match.status.value.replace('_', ' ')}"
        body = match.resolution_notes or f"{home_team.name} vs {away_team.name}"

    for team in (home_team, away_team):
        await send_notification(team.captain_id, title, body, link)


async def award_tournament_completion(
    tournament: Tournament, standings: list[StandingRecord], teams: dict[TeamId, Team]
) -> None:
    """Award podium badges to the top three captains and tell the organizer."""
    for record in standings[:3]:
        team = teams.get(record.team_id)
        if team is None:
            continue
        await publish_event(
            CollaboratorEvent.BADGE_AWARDED,
            {
                "user_id": str(team.captain_id),
                "tournament_id": int(tournament.id),
                "badge": PODIUM_BADGES[record.ranking],
                "ranking": record.ranking,
                "tournaments_won_increment": 1 if record.ranking == 1 else 0,
            },
        )
        await publish_event(
            CollaboratorEvent.ACHIEVEMENTS_CHECK, {"user_id": str(team.captain_id)}
        )

    await send_notification(
        tournament.organizer_id,
        "Tournament completed",
        f"{tournament.name} has finished and the final standings are in.",
        f"/tournaments/{int(tournament.id)}",
    )
