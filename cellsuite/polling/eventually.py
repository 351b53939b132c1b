from __future__ import annotations

import asyncio
import time
from typing import Any, Callable

from cellsuite.errors import AssertionTimeoutError
from cellsuite.logging import Logger

from .conditions import Condition, as_condition
from .logging_models import PollingDebug, PollingError, PollingInfo
from .poll_timing import PollTiming
from .sample import Probe, describe_probe, sample


async def eventually(
    probe: Probe,
    condition: Condition | Callable[[Any], bool] | None = None,
    timeout: float = 1.0,
    interval: float = 0.01,
    description: str | None = None,
    logger: Logger | None = None,
) -> Any:
    """
    Poll ``probe`` until ``condition`` holds for its value, returning it.

    The first attempt happens immediately and later attempts every
    ``interval`` seconds. An exception raised by the probe or condition
    counts as an unsatisfied sample. Async probes are cancelled once they
    overrun the remaining deadline. When the deadline passes, raises
    AssertionTimeoutError carrying the last value and the last error.
    """
    timing = PollTiming(timeout, interval)
    condition = as_condition(condition)

    if description is None:
        description = describe_probe(probe)

    if logger is None:
        logger = Logger()

    started = time.monotonic()
    deadline = started + timing.timeout

    attempts = 0
    last_value: Any = None
    last_error: BaseException | None = None

    while True:
        attempts += 1
        remaining = deadline - time.monotonic()
        last_value = None

        try:
            last_value = await sample(
                probe,
                max(remaining, timing.interval),
            )
            last_error = None

            if condition(last_value):
                await logger.log(
                    PollingInfo(
                        message=f"{description} did {condition.description}",
                        probe=description,
                        attempt=attempts,
                        elapsed=time.monotonic() - started,
                    )
                )

                return last_value

        except Exception as err:
            last_error = err

        now = time.monotonic()
        elapsed = now - started

        await logger.log(
            PollingDebug(
                message=f"{description} does not {condition.description} yet (value={last_value!r}, error={last_error!r})",
                probe=description,
                attempt=attempts,
                elapsed=elapsed,
            )
        )

        remaining = deadline - now
        if remaining <= 0:
            await logger.log(
                PollingError(
                    message=f"Timed out waiting for {description} to {condition.description}",
                    probe=description,
                    attempt=attempts,
                    elapsed=elapsed,
                )
            )

            raise AssertionTimeoutError(
                description,
                condition.description,
                last_value,
                elapsed,
                attempts,
                last_error=last_error,
            )

        await asyncio.sleep(min(timing.interval, remaining))
