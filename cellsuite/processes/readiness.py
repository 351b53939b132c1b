"""
Readiness checks for orchestrated components.

A component is ready either when a line of its combined output matches a
pattern, when an async health probe first succeeds, or as soon as it has
been spawned. ProcessHandle feeds every output line to ``observe`` and,
for checks that poll, calls ``check`` every ``interval`` seconds.
"""

import asyncio
import re
from typing import Awaitable, Callable


class ReadinessCheck:
    polls: bool = False
    immediate: bool = False
    interval: float = 0.1

    def observe(self, line: str) -> bool:
        return False

    async def check(self) -> bool:
        return False

    def describe(self) -> str:
        return type(self).__name__


class Started(ReadinessCheck):
    immediate = True

    def describe(self) -> str:
        return "process spawned"


class OutputPattern(ReadinessCheck):
    def __init__(self, pattern: str | re.Pattern[str]) -> None:
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    def observe(self, line: str) -> bool:
        return self.pattern.search(line) is not None

    def describe(self) -> str:
        return f"output matching {self.pattern.pattern!r}"


class HealthCheck(ReadinessCheck):
    polls = True

    def __init__(
        self,
        probe: Callable[[], Awaitable[bool]],
        interval: float = 0.1,
        description: str | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("HealthCheck interval must be positive")

        self.probe = probe
        self.interval = interval
        self.description = description

    async def check(self) -> bool:
        return bool(await self.probe())

    def describe(self) -> str:
        return self.description or "health probe"


def tcp_port_open(
    host: str,
    port: int,
    timeout: float = 1.0,
) -> Callable[[], Awaitable[bool]]:

    async def probe() -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=timeout,
            )

        except (OSError, asyncio.TimeoutError):
            return False

        writer.close()
        try:
            await writer.wait_closed()

        except OSError:
            pass

        return True

    return probe
