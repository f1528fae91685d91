import asyncio
from typing import Protocol

import httpx
from pydantic import ValidationError

from arena.config import config
from arena.models.adjudication import AdjudicationRequest, AdjudicationVerdict
from arena.utils.logging import logger


class AdjudicationError(Exception):
    pass


class Adjudicator(Protocol):
    async def adjudicate(self, request: AdjudicationRequest) -> AdjudicationVerdict: ...


class HttpAdjudicator:
    """Sends evidence to the verification service and parses its verdict."""

    def __init__(self, url: str, timeout_seconds: float) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds

    async def adjudicate(self, request: AdjudicationRequest) -> AdjudicationVerdict:
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.post(self.url, json=request.model_dump(mode="json"))
            response.raise_for_status()
            return AdjudicationVerdict.model_validate(response.json())


class UnconfiguredAdjudicator:
    async def adjudicate(self, request: AdjudicationRequest) -> AdjudicationVerdict:
        raise AdjudicationError("No adjudicator_url is configured")


adjudicator: Adjudicator = (
    HttpAdjudicator(config.adjudicator_url, config.adjudicator_timeout_seconds)
    if config.adjudicator_url is not None
    else UnconfiguredAdjudicator()
)


async def request_verdict(request: AdjudicationRequest) -> AdjudicationVerdict:
    """
    Ask the adjudicator for a verdict. Any failure, including a malformed verdict or running
    past the configured timeout, surfaces as AdjudicationError.
    """
    try:
        return await asyncio.wait_for(
            adjudicator.adjudicate(request), timeout=config.adjudicator_timeout_seconds
        )
    except TimeoutError as exc:
        logger.warning(
            "Adjudicator timed out after %ss: home=%s away=%s",
            config.adjudicator_timeout_seconds,
            request.home_team_name,
            request.away_team_name,
        )
        raise AdjudicationError("Adjudicator timed out") from exc
    except (httpx.HTTPError, ValidationError, ValueError) as exc:
        logger.warning(
            "Adjudicator failed: home=%s away=%s error=%s",
            request.home_team_name,
            request.away_team_name,
            exc,
        )
        raise AdjudicationError(str(exc)) from exc
