from __future__ import annotations

from typing import Any, Callable

from cellsuite.env import Env
from cellsuite.logging import Logger

from .conditions import Condition
from .consistently import consistently
from .eventually import eventually
from .sample import Probe


class Poller:
    """eventually()/consistently() with timing defaults bound from Env."""

    def __init__(
        self,
        env: Env,
        logger: Logger | None = None,
    ) -> None:
        config = env.get_polling_config()

        self.timeout: float = config["timeout"]
        self.interval: float = config["interval"]
        self.window: float = config["window"]

        self._logger = logger or Logger()

    async def eventually(
        self,
        probe: Probe,
        condition: Condition | Callable[[Any], bool] | None = None,
        timeout: float | None = None,
        interval: float | None = None,
        description: str | None = None,
    ) -> Any:
        return await eventually(
            probe,
            condition=condition,
            timeout=self.timeout if timeout is None else timeout,
            interval=self.interval if interval is None else interval,
            description=description,
            logger=self._logger,
        )

    async def consistently(
        self,
        probe: Probe,
        condition: Condition | Callable[[Any], bool] | None = None,
        window: float | None = None,
        interval: float | None = None,
        description: str | None = None,
    ) -> Any:
        return await consistently(
            probe,
            condition=condition,
            window=self.window if window is None else window,
            interval=self.interval if interval is None else interval,
            description=description,
            logger=self._logger,
        )
