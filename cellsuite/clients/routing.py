from __future__ import annotations

from typing import Awaitable, Callable

from cellsuite.logging import Logger

from .http_client import HTTPClient
from .logging_models import ClientDebug


class RoutingClient(HTTPClient):
    """Probes the routing layer for a host, the way an external user would."""

    def __init__(
        self,
        router_address: str,
        timeout: float = 5.0,
        logger: Logger | None = None,
    ) -> None:
        super().__init__(timeout=timeout, logger=logger)
        self.router_address = router_address

    async def response_code(self, host: str) -> int:
        url = f"http://{self.router_address}/"

        async with self.session.get(
            url,
            headers={"Host": host},
            allow_redirects=False,
        ) as response:
            await response.read()
            status = response.status

        await self._logger.log(
            ClientDebug(
                message=f"GET / for {host}",
                url=url,
                status=status,
            )
        )

        return status

    def response_code_poller(self, host: str) -> Callable[[], Awaitable[int]]:

        async def poll() -> int:
            return await self.response_code(host)

        poll.description = f"response code for {host}"
        return poll
