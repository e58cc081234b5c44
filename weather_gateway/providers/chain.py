"""Generic runner for ordered provider fallback chains.

A chain is a flat, fixed list of stages. Each stage is attempted at most once,
in order, and the first stage producing a non-empty result wins. Every
attempt is reduced to a StageOutcome, so one provider's timeout, HTTP error or
garbage payload turns into "try the next stage" instead of an exception
unwinding the request.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import ValidationError

from weather_gateway.errors import (
    ProviderUnavailableError,
    ResourceExhaustedError,
    UpstreamHTTPError,
    UpstreamMalformedError,
    UpstreamTimeoutError,
)
from weather_gateway.logger import get_logger

log = get_logger("chain")


class FailureKind(str, Enum):
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    MALFORMED = "malformed"
    UNAVAILABLE = "unavailable"
    EMPTY = "empty"


@dataclass(frozen=True)
class Stage:
    """One provider (or static fallback) in a chain.

    ``timeout_seconds`` of None means the stage does no I/O and is not
    bounded, which is the case for lookups in the local place table.
    """

    name: str
    fetch: Callable[[Any], Awaitable[Any]]
    timeout_seconds: float | None = None


@dataclass(frozen=True)
class StageOutcome:
    stage: str
    value: Any = None
    failure: FailureKind | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None


async def attempt(stage: Stage, request: Any, timeout_seconds: float | None = None) -> StageOutcome:
    """Run one stage under its deadline and classify the result.

    On expiry the stage coroutine is cancelled by ``asyncio.wait_for``, which
    closes any HTTP client it opened with ``async with``.
    """
    deadline = timeout_seconds if timeout_seconds is not None else stage.timeout_seconds
    try:
        if deadline is None:
            value = await stage.fetch(request)
        else:
            value = await asyncio.wait_for(stage.fetch(request), timeout=deadline)
    except (asyncio.TimeoutError, UpstreamTimeoutError) as exc:
        return StageOutcome(stage=stage.name, failure=FailureKind.TIMEOUT, detail=str(exc) or f"no answer in {deadline}s")
    except UpstreamHTTPError as exc:
        return StageOutcome(stage=stage.name, failure=FailureKind.HTTP_ERROR, detail=str(exc))
    except UpstreamMalformedError as exc:
        return StageOutcome(stage=stage.name, failure=FailureKind.MALFORMED, detail=str(exc))
    except ValidationError as exc:
        # Provider data that does not fit the result models.
        return StageOutcome(stage=stage.name, failure=FailureKind.MALFORMED, detail=str(exc))
    except ProviderUnavailableError as exc:
        return StageOutcome(stage=stage.name, failure=FailureKind.UNAVAILABLE, detail=str(exc))

    if not value:
        return StageOutcome(stage=stage.name, failure=FailureKind.EMPTY, detail="no results")
    return StageOutcome(stage=stage.name, value=value)


class ProviderChain:
    """Ordered fallback over stages for a single capability.

    The stage order is fixed at construction and never adapted to past
    success rates. ``total_timeout_seconds`` optionally bounds the whole
    chain: a stage never gets more time than what is left of that budget.
    """

    def __init__(
        self,
        capability: str,
        stages: list[Stage],
        total_timeout_seconds: float | None = None,
    ) -> None:
        self.capability = capability
        self.stages = tuple(stages)
        self.total_timeout_seconds = total_timeout_seconds

    @property
    def stage_names(self) -> list[str]:
        return [stage.name for stage in self.stages]

    async def run(self, request: Any) -> Any:
        """Return the first successful stage value.

        Raises ResourceExhaustedError (carrying every outcome) when all stages
        failed or returned nothing.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        outcomes: list[StageOutcome] = []

        for stage in self.stages:
            timeout = stage.timeout_seconds
            if self.total_timeout_seconds is not None:
                remaining = self.total_timeout_seconds - (loop.time() - started)
                if remaining <= 0:
                    outcome = StageOutcome(stage=stage.name, failure=FailureKind.TIMEOUT, detail="chain budget spent")
                    outcomes.append(outcome)
                    self._log_failure(outcome)
                    continue
                timeout = remaining if timeout is None else min(timeout, remaining)

            outcome = await attempt(stage, request, timeout)
            outcomes.append(outcome)
            if outcome.ok:
                log.info(f"Provider chain resolved capability={self.capability} stage={stage.name}")
                return outcome.value
            self._log_failure(outcome)

        log.warning(
            f"Provider chain exhausted capability={self.capability} "
            f"failures={[(o.stage, o.failure.value) for o in outcomes if o.failure]}"
        )
        raise ResourceExhaustedError(self.capability, outcomes)

    def _log_failure(self, outcome: StageOutcome) -> None:
        log.warning(
            f"Provider stage failed capability={self.capability} stage={outcome.stage} "
            f"failure={outcome.failure.value if outcome.failure else None} detail={outcome.detail}"
        )
