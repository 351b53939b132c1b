from __future__ import annotations

import ssl

from cellsuite.env import Env
from cellsuite.errors import TLSConfigError
from cellsuite.logging import Logger

from .http_client import HTTPClient
from .logging_models import ClientDebug
from .tls import build_mutual_tls_context


class AgentAdminClient(HTTPClient):
    """
    Talks to an agent's admin listener. Requests carry no body; only the
    status code matters to callers.
    """

    def __init__(
        self,
        scheme: str = "https",
        ssl_context: ssl.SSLContext | None = None,
        timeout: float = 5.0,
        logger: Logger | None = None,
    ) -> None:
        super().__init__(timeout=timeout, logger=logger)
        self.scheme = scheme
        self._ssl_context = ssl_context

    @classmethod
    def from_env(
        cls,
        env: Env,
        logger: Logger | None = None,
    ) -> AgentAdminClient:
        tls_config = env.get_tls_config()

        ssl_context: ssl.SSLContext | None = None
        if tls_config is not None:
            missing = [
                f"CELLSUITE_TLS_{name.upper()}"
                for name in ("client_cert", "client_key")
                if not tls_config[name]
            ]

            if missing:
                raise TLSConfigError(missing)

            ssl_context = build_mutual_tls_context(
                tls_config["ca_cert"],
                tls_config["client_cert"],
                tls_config["client_key"],
            )

        return cls(
            scheme=env.CELLSUITE_ADMIN_SCHEME,
            ssl_context=ssl_context,
            timeout=env.seconds("CELLSUITE_REQUEST_TIMEOUT"),
            logger=logger,
        )

    async def evacuate(self, address: str) -> int:
        return await self._post(
            f"{self.scheme}://{address}/evacuate",
        )

    async def stop_instance(
        self,
        address: str,
        process_guid: str,
        instance_guid: str,
    ) -> int:
        return await self._post(
            f"{self.scheme}://{address}/v1/lrps/{process_guid}/instances/{instance_guid}/stop",
        )

    async def _post(self, url: str) -> int:
        ssl_context = self._ssl_context if self._ssl_context is not None else True

        async with self.session.post(
            url,
            data=b"",
            headers={"Content-Type": "text/html"},
            ssl=ssl_context,
        ) as response:
            await response.read()
            status = response.status

        await self._logger.log(
            ClientDebug(
                message="POST",
                url=url,
                status=status,
            )
        )

        return status
