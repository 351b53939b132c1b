from __future__ import annotations

import aiohttp

from cellsuite.logging import Logger


class HTTPClient:
    """Owns one lazily-created aiohttp session per client instance."""

    def __init__(
        self,
        timeout: float = 5.0,
        logger: Logger | None = None,
    ) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None
        self._logger = logger or Logger()

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)

        return self._session

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()

        self._session = None
