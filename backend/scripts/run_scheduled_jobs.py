#!/usr/bin/env python3
import argparse
import asyncio

from arena.database import database
from arena.logic.overdue import sweep_overdue_matches
from arena.logic.tournaments import activate_due_tournaments
from arena.utils.id_types import TournamentId
from arena.utils.logging import logger


async def run_jobs(*, skip_activation: bool, tournament_id: TournamentId | None) -> None:
    if not skip_activation:
        changed = await activate_due_tournaments()
        logger.info("Activated %s tournament(s): %s", len(changed), changed)

    summary = await sweep_overdue_matches(tournament_id=tournament_id)
    print(summary.model_dump_json(indent=2))


async def async_main() -> None:
    parser = argparse.ArgumentParser(
        description=(
            "Run the periodic jobs: start tournaments whose registration closed "
            "and resolve matches whose match day has passed."
        )
    )
    parser.add_argument(
        "--tournament-id",
        type=int,
        default=None,
        help="Only sweep overdue matches of this tournament.",
    )
    parser.add_argument(
        "--skip-activation",
        action="store_true",
        help="Do not start or kick off tournaments, only sweep overdue matches.",
    )
    args = parser.parse_args()

    await database.connect()
    try:
        await run_jobs(
            skip_activation=bool(args.skip_activation),
            tournament_id=TournamentId(args.tournament_id) if args.tournament_id else None,
        )
    finally:
        await database.disconnect()


if __name__ == "__main__":
    asyncio.run(async_main())
