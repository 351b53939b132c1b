from __future__ import annotations

import asyncio
import time
from typing import Any, Callable

from cellsuite.errors import ConsistencyViolationError
from cellsuite.logging import Logger

from .conditions import Condition, as_condition
from .logging_models import PollingDebug, PollingError
from .poll_timing import PollTiming
from .sample import Probe, describe_probe, sample


async def consistently(
    probe: Probe,
    condition: Condition | Callable[[Any], bool] | None = None,
    window: float = 0.1,
    interval: float = 0.01,
    description: str | None = None,
    logger: Logger | None = None,
) -> Any:
    """
    Sample ``probe`` every ``interval`` seconds for the whole ``window``,
    failing at the first sample that does not satisfy ``condition``.
    Returns the last sampled value.
    """
    timing = PollTiming(window, interval)
    condition = as_condition(condition)

    if description is None:
        description = describe_probe(probe)

    if logger is None:
        logger = Logger()

    started = time.monotonic()
    deadline = started + timing.timeout

    samples = 0
    value: Any = None

    while True:
        samples += 1
        error: BaseException | None = None
        value = None

        try:
            value = await sample(
                probe,
                max(deadline - time.monotonic(), timing.interval),
            )
            satisfied = condition(value)

        except Exception as err:
            error = err
            satisfied = False

        elapsed = time.monotonic() - started

        if not satisfied:
            await logger.log(
                PollingError(
                    message=f"{description} stopped satisfying {condition.description} (value={value!r}, error={error!r})",
                    probe=description,
                    attempt=samples,
                    elapsed=elapsed,
                )
            )

            raise ConsistencyViolationError(
                description,
                condition.description,
                value,
                elapsed,
                samples,
                error=error,
            ) from error

        await logger.log(
            PollingDebug(
                message=f"{description} still does {condition.description}",
                probe=description,
                attempt=samples,
                elapsed=elapsed,
            )
        )

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return value

        await asyncio.sleep(min(timing.interval, remaining))
