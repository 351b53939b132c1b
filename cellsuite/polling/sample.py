import asyncio
import inspect
from typing import Any, Awaitable, Callable

Probe = Callable[[], Any | Awaitable[Any]]


async def sample(probe: Probe, bound: float) -> Any:
    value = probe()

    if inspect.isawaitable(value):
        value = await asyncio.wait_for(value, timeout=bound)

    return value


def describe_probe(probe: Probe) -> str:
    description = getattr(probe, "description", None)
    if description:
        return description

    return getattr(probe, "__qualname__", None) or repr(probe)
